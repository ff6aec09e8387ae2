# app/errors.py
from typing import Optional


class CatalogError(Exception):
    """Base for every error a catalog operation can return to its caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    status_code = 400


class NotFoundError(CatalogError):
    status_code = 404


class UploadError(CatalogError):
    status_code = 500


class PersistenceError(CatalogError):
    status_code = 500


class ConflictError(PersistenceError):
    """The record changed since the caller (or this request) last read it."""

    status_code = 409


class CleanupError(CatalogError):
    """A compensating delete failed. Collected and logged, never raised to callers."""

    def __init__(self, storage_id: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to delete stored object '{storage_id}': {cause}")
        self.storage_id = storage_id
        self.cause = cause


class ConfigurationError(CatalogError):
    status_code = 500
