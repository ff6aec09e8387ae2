# app/importer.py
"""
Bulk catalog import from CSV.

Each row goes through CatalogService.create, so rows get the same
validation and upload rollback as the HTTP API. Expected columns:
productName, productPrice, productDescription, category, colors, sizes,
stock, images (local image paths: JSON list, comma list or one path).
"""
import json
import logging
import mimetypes
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .errors import CatalogError
from .schemas import ImageFile
from .service import CatalogService

logger = logging.getLogger(__name__)

COLUMNS = {
    "productName": "product_name",
    "productPrice": "product_price",
    "productDescription": "product_description",
    "category": "category",
    "colors": "colors",
    "sizes": "sizes",
    "stock": "stock",
}


def _cell(v: Any) -> Any:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return None
    return v


def parse_images(v: Any) -> List[str]:
    """Accept list as-is; if string that looks like JSON list -> json.loads; if comma string -> split; else []"""
    v = _cell(v)
    if v is None:
        return []
    if isinstance(v, list):
        return [str(p).strip() for p in v if str(p).strip()]
    v = str(v).strip()
    if not v:
        return []
    if v.startswith("[") and v.endswith("]"):
        try:
            return [str(p).strip() for p in json.loads(v) if str(p).strip()]
        except ValueError:
            pass
    if "," in v:
        return [p.strip() for p in v.split(",") if p.strip()]
    return [v]


def row_to_payload(row: Dict[str, Any]) -> Dict[str, Any]:
    data = {}
    for column, key in COLUMNS.items():
        value = _cell(row.get(column))
        if value is not None:
            data[key] = str(value) if key not in ("colors", "sizes") else value
    return data


def import_catalogs(csv_path: Path, service: CatalogService, base_dir: Optional[Path] = None) -> Dict[str, int]:
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    base_dir = base_dir or Path(csv_path).parent
    created = failed = 0

    for idx, row in df.iterrows():
        data = row_to_payload(row.to_dict())
        paths = [base_dir / p for p in parse_images(row.get("images"))]
        try:
            with ExitStack() as stack:
                files = [
                    ImageFile(
                        filename=p.name,
                        content_type=mimetypes.guess_type(p.name)[0],
                        stream=stack.enter_context(p.open("rb")),
                        size=p.stat().st_size,
                    )
                    for p in paths
                ]
                record = service.create(data, files)
        except (CatalogError, OSError) as e:
            failed += 1
            logger.warning(f"❌ Row {idx} ({data.get('product_name')!r}) skipped: {e}")
            continue
        created += 1
        logger.info(f"✅ Row {idx} imported as {record.id}")

    logger.info(f"Import finished: {created} created, {failed} failed")
    return {"created": created, "failed": failed}
