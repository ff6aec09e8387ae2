# app/repository.py
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .models import Catalog
from .schemas import CatalogFilter


class CatalogRepository:
    """
    Record store for catalogs. Every write commits its own transaction and
    rolls the session back before re-raising on failure.
    """

    def __init__(self, db: Session):
        self.db = db

    def find(self, filters: Optional[CatalogFilter] = None) -> List[Catalog]:
        stmt = select(Catalog)
        if filters is not None:
            if filters.category is not None:
                stmt = stmt.where(Catalog.category == filters.category)
            if filters.is_active is not None:
                stmt = stmt.where(Catalog.is_active == filters.is_active)
        stmt = stmt.order_by(Catalog.created_at.desc(), Catalog.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def find_by_id(self, catalog_id: str) -> Optional[Catalog]:
        if not catalog_id:
            return None
        return self.db.execute(select(Catalog).where(Catalog.id == catalog_id)).scalar_one_or_none()

    def insert(self, values: Dict[str, Any]) -> Catalog:
        try:
            record = Catalog(**values)
            self.db.add(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    def update_by_id(self, catalog_id: str, values: Dict[str, Any]) -> Optional[Catalog]:
        record = self.find_by_id(catalog_id)
        if record is None:
            return None
        try:
            for key, value in values.items():
                setattr(record, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    def delete_by_id(self, catalog_id: str) -> bool:
        # Unconditional on version: once the images are gone the row goes too.
        try:
            result = self.db.execute(
                delete(Catalog)
                .where(Catalog.id == catalog_id)
                .execution_options(synchronize_session="fetch")
            )
            deleted = result.rowcount > 0
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return deleted
