from functools import lru_cache

from fastapi import Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .db import get_db
from .errors import ConfigurationError
from .service import CatalogService
from .storage_client import create_object_store

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


def add_cors(app, origins=None):
    origins = origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )


def add_security_headers(app):
    @app.middleware("http")
    async def _security_headers(request, call_next):
        response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


@lru_cache(maxsize=1)
def _object_store():
    return create_object_store()


def get_object_store():
    try:
        return _object_store()
    except RuntimeError as e:
        raise ConfigurationError("Image storage is not configured") from e


def get_catalog_service(db: Session = Depends(get_db), store=Depends(get_object_store)) -> CatalogService:
    return CatalogService(db, store)


def get_catalog_reader(db: Session = Depends(get_db)) -> CatalogService:
    """Service for read-only routes; never touches the object store."""
    return CatalogService(db, store=None)
