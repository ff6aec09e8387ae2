# scripts/import_catalog.py
import sys
import logging
from pathlib import Path

from app.db import Base, SessionLocal, engine
from app.importer import import_catalogs
from app.service import CatalogService
from app.storage_client import create_object_store


def main(csv_path: str):
    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)
    store = create_object_store()
    with SessionLocal() as session:
        result = import_catalogs(Path(csv_path), CatalogService(session, store))
    print(f"✅ Catalog import done: {result['created']} created, {result['failed']} failed.")
    return 0 if result["failed"] == 0 else 1


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/import_catalog.py catalogs.csv")
        sys.exit(1)
    sys.exit(main(sys.argv[1]))
