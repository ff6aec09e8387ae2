# app/service.py
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from .models import Catalog
from .parsing import (
    optional_text,
    parse_bool,
    parse_id_list,
    parse_label_set,
    parse_price,
    parse_retained_ids,
    parse_stock,
    require_text,
    validate_file_count,
    validate_image_file,
)
from .reconciler import ImageSetReconciler, LeakHook, assign_primary
from .repository import CatalogRepository
from .schemas import CatalogFilter, ImageFile, ImageRef, StockStatus

logger = logging.getLogger(__name__)

_PARTIAL_FIELDS: Dict[str, Callable[[Any], Any]] = {
    "product_name": lambda v: require_text(v, "Product name"),
    "product_price": parse_price,
    "product_description": lambda v: require_text(v, "Product description"),
    "category": optional_text,
    "colors": lambda v: parse_label_set(v, "colors"),
    "sizes": lambda v: parse_label_set(v, "sizes"),
    "stock": parse_stock,
    "is_active": parse_bool,
}


def _validate_create(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "product_name": require_text(data.get("product_name"), "Product name"),
        "product_price": parse_price(data.get("product_price")),
        "product_description": require_text(data.get("product_description"), "Product description"),
        "category": optional_text(data.get("category")),
        "colors": parse_label_set(data.get("colors"), "colors"),
        "sizes": parse_label_set(data.get("sizes"), "sizes"),
        "stock": parse_stock(data.get("stock")),
        "is_active": True,
    }


def _validate_partial(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for key, value in data.items():
        parser = _PARTIAL_FIELDS.get(key)
        if parser is None:
            continue
        values[key] = parser(value)
    return values


def _validate_files(files: Sequence[ImageFile], required: bool) -> None:
    validate_file_count(len(files), required=required)
    for f in files:
        validate_image_file(f.filename, f.content_type, f.size)


def _dump(refs: Iterable[ImageRef]) -> List[dict]:
    return [r.model_dump(by_alias=True) for r in refs]


def _load(images: Optional[list]) -> List[ImageRef]:
    return [ImageRef.model_validate(i) for i in images or []]


class CatalogService:
    """
    Catalog write-path. Keeps a catalog row and its stored images
    consistent: side effects on the object store that are not yet anchored
    by a committed row are undone when a later step fails.
    """

    def __init__(self, db: Session, store, on_leak: Optional[LeakHook] = None):
        self.repo = CatalogRepository(db)
        self.reconciler = ImageSetReconciler(store, on_leak=on_leak)

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------
    def get_all(self, filters: Optional[CatalogFilter] = None) -> List[Catalog]:
        try:
            return self.repo.find(filters)
        except SQLAlchemyError as e:
            logger.exception("❌ Listing catalogs failed")
            self.repo.db.rollback()
            raise PersistenceError("Failed to read catalogs") from e

    def get_by_id(self, catalog_id: str) -> Catalog:
        try:
            record = self.repo.find_by_id(catalog_id)
        except SQLAlchemyError as e:
            logger.exception(f"❌ Reading catalog {catalog_id} failed")
            self.repo.db.rollback()
            raise PersistenceError("Failed to read catalog") from e
        if record is None:
            raise NotFoundError("Catalog not found")
        return record

    def get_colors(self, catalog_id: str) -> List[str]:
        return list(self.get_by_id(catalog_id).colors)

    def check_stock(self, catalog_id: str) -> StockStatus:
        record = self.get_by_id(catalog_id)
        return StockStatus(stock=record.stock, available=record.stock > 0)

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------
    def create(self, data: Dict[str, Any], files: Sequence[ImageFile]) -> Catalog:
        values = _validate_create(data)
        _validate_files(files, required=True)

        refs = assign_primary(self.reconciler.upload_all(files))
        values["images"] = _dump(refs)

        try:
            record = self.repo.insert(values)
        except (SQLAlchemyError, ValueError) as e:
            logger.exception(f"❌ Saving catalog '{values['product_name']}' failed")
            self.reconciler.rollback(refs)
            raise PersistenceError("Failed to save catalog") from e

        logger.info(f"✅ Created catalog {record.id} with {len(refs)} image(s)")
        return record

    def update(
        self,
        catalog_id: str,
        data: Optional[Dict[str, Any]] = None,
        new_files: Optional[Sequence[ImageFile]] = None,
        existing_images: Any = None,
        images_to_remove: Any = None,
        expected_version: Optional[int] = None,
    ) -> Catalog:
        """
        Partial update. Final images = retained ++ newly uploaded, minus
        images_to_remove. Removed objects are deleted from the store only
        after the row is written.
        """
        record = self.get_by_id(catalog_id)

        values = _validate_partial(data or {})
        new_files = list(new_files or [])
        _validate_files(new_files, required=False)

        current = _load(record.images)
        owned = {r.storage_id: r for r in current}
        remove_ids = parse_id_list(images_to_remove, "deletedImages")

        if existing_images is not None:
            retained_ids = parse_retained_ids(existing_images)
            unknown = [i for i in retained_ids if i not in owned]
            if unknown:
                raise ValidationError(f"Unknown existing image(s): {', '.join(unknown)}")
            retained = [owned[i] for i in retained_ids]
        else:
            retained = current

        if expected_version is not None and expected_version != record.version:
            raise ConflictError("Catalog was modified by another request, reload and try again")

        uploaded = self.reconciler.upload_all(new_files) if new_files else []

        if existing_images is not None or uploaded or remove_ids:
            images = [r for r in retained + uploaded if r.storage_id not in remove_ids]
            if not images:
                logger.warning(f"⚠️ Catalog {record.id} is left without images")
            values["images"] = _dump(images)

        try:
            updated = self.repo.update_by_id(record.id, values)
        except StaleDataError as e:
            logger.warning(f"Concurrent update detected on catalog {record.id}")
            self.reconciler.rollback(uploaded)
            raise ConflictError("Catalog was modified by another request, reload and try again") from e
        except (SQLAlchemyError, ValueError) as e:
            logger.exception(f"❌ Updating catalog {record.id} failed")
            self.reconciler.rollback(uploaded)
            raise PersistenceError("Failed to update catalog") from e

        if updated is None:
            self.reconciler.rollback(uploaded)
            raise NotFoundError("Catalog not found")

        removals = [i for i in remove_ids if i in owned]
        ignored = [i for i in remove_ids if i not in owned]
        if ignored:
            logger.info(f"Ignoring removal of image(s) not owned by catalog {record.id}: {ignored}")
        if removals:
            self.reconciler.delete_many(removals)

        logger.info(f"✅ Updated catalog {record.id} (+{len(uploaded)} / -{len(removals)} image(s))")
        return updated

    def delete(self, catalog_id: str) -> None:
        record = self.get_by_id(catalog_id)

        # Stored images go first; a failure here never blocks removing the row.
        self.reconciler.delete_many(r.storage_id for r in _load(record.images))

        try:
            deleted = self.repo.delete_by_id(record.id)
        except SQLAlchemyError as e:
            logger.exception(f"❌ Deleting catalog {record.id} failed")
            raise PersistenceError("Failed to delete catalog") from e
        if not deleted:
            logger.info(f"Catalog {record.id} was already removed by another request")
            return
        logger.info(f"🗑️ Deleted catalog {record.id}")
