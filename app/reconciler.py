# app/reconciler.py
"""
Image set reconciliation against the object store.

Uploads cannot join the database transaction, so every upload that is not
yet anchored by a committed record must be individually reversible. A
failed reversal leaves a leaked object: it is logged and reported to the
leak hook, and never changes the outcome of the operation.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence

from .errors import CleanupError, UploadError
from .schemas import ImageFile, ImageRef

logger = logging.getLogger(__name__)

LeakHook = Callable[[str, BaseException], None]


def log_leaked_object(storage_id: str, error: BaseException) -> None:
    logger.warning(f"🧹 Leaked stored object '{storage_id}' (cleanup failed: {error})")


def assign_primary(refs: Sequence[ImageRef]) -> List[ImageRef]:
    """
    Primary image rule: the first image uploaded by a create call is the
    primary one, every other image is not. Updates never call this.
    """
    return [ref.model_copy(update={"is_primary": i == 0}) for i, ref in enumerate(refs)]


class ImageSetReconciler:
    def __init__(self, store, on_leak: Optional[LeakHook] = None):
        self.store = store
        self.on_leak = on_leak or log_leaked_object

    def upload_all(self, files: Sequence[ImageFile]) -> List[ImageRef]:
        """
        Upload files one by one, in order. If upload k fails, refs 1..k-1
        are deleted before UploadError is raised.
        """
        refs: List[ImageRef] = []
        for f in files:
            try:
                stored = self.store.upload(f.stream, f.filename, f.content_type)
            except Exception as e:
                logger.error(f"❌ Upload of '{f.filename}' failed after {len(refs)} successful upload(s): {e}")
                self.rollback(refs)
                raise UploadError(f"Failed to upload image '{f.filename}'") from e
            refs.append(ImageRef(url=stored.url, storage_id=stored.storage_id, is_primary=False))
        return refs

    def rollback(self, refs: Iterable[ImageRef]) -> List[CleanupError]:
        ids = [r.storage_id for r in refs]
        if not ids:
            return []
        logger.info(f"↩️ Rolling back {len(ids)} uploaded image(s)")
        return self.delete_many(ids)

    def delete_many(self, storage_ids: Iterable[str]) -> List[CleanupError]:
        """Best-effort delete. "Not found" counts as success; failures are returned, not raised."""
        failures: List[CleanupError] = []
        for storage_id in storage_ids:
            try:
                if not self.store.delete(storage_id):
                    logger.debug(f"Stored object '{storage_id}' was already gone")
            except Exception as e:
                failures.append(CleanupError(storage_id, e))
                self.on_leak(storage_id, e)
        if failures:
            logger.warning(f"⚠️ {len(failures)} stored object(s) could not be deleted")
        return failures
