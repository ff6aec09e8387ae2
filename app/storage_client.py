# app/storage_client.py
import os
import time
import uuid
import logging
from typing import Any, BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from pydantic import BaseModel

# --- Load .env safely (optional for local dev) ---
load_dotenv()

# --- ENV variables ---
S3_BUCKET = os.getenv("S3_BUCKET")
S3_REGION = os.getenv("S3_REGION", "us-east-1")
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or None
S3_PUBLIC_BASE_URL = os.getenv("S3_PUBLIC_BASE_URL") or None
S3_PREFIX = os.getenv("S3_PREFIX", "katalog_produk")

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class ObjectStoreError(Exception):
    pass


class StoredObject(BaseModel):
    url: str
    storage_id: str


class S3ObjectStore:
    """
    Image storage on S3 (or any S3-compatible endpoint).
    storage_id is the object key; url is its public address.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        prefix: str = "katalog_produk",
        public_base_url: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix.strip("/")
        self.client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
        if public_base_url:
            self.public_base_url = public_base_url.rstrip("/")
        elif endpoint_url:
            self.public_base_url = f"{endpoint_url.rstrip('/')}/{bucket}"
        else:
            self.public_base_url = f"https://{bucket}.s3.{region}.amazonaws.com"

    def _make_key(self, filename: str) -> str:
        stem = os.path.splitext(os.path.basename(filename or "image"))[0] or "image"
        stem = "".join(c if c.isalnum() or c in "-_" else "-" for c in stem)
        name = f"katalog-{int(time.time() * 1000)}-{stem}-{uuid.uuid4().hex[:8]}"
        return f"{self.prefix}/{name}" if self.prefix else name

    def url_for(self, storage_id: str) -> str:
        return f"{self.public_base_url}/{storage_id}"

    def upload(self, stream: BinaryIO, filename: str, content_type: Optional[str] = None) -> StoredObject:
        key = self._make_key(filename)
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.upload_fileobj(stream, self.bucket, key, ExtraArgs=extra)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"❌ Upload failed for '{filename}': {e}")
            raise ObjectStoreError(f"Upload failed for '{filename}'") from e
        logger.info(f"📤 Uploaded '{filename}' → s3://{self.bucket}/{key}")
        return StoredObject(url=self.url_for(key), storage_id=key)

    def delete(self, storage_id: str) -> bool:
        """Delete an object. Returns False when it was already gone."""
        try:
            self.client.head_object(Bucket=self.bucket, Key=storage_id)
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES:
                logger.info(f"Object already absent: {storage_id}")
                return False
            raise ObjectStoreError(f"Lookup failed for '{storage_id}'") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Lookup failed for '{storage_id}'") from e

        try:
            self.client.delete_object(Bucket=self.bucket, Key=storage_id)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Delete failed for '{storage_id}'") from e
        logger.info(f"🗑️ Deleted s3://{self.bucket}/{storage_id}")
        return True


def create_object_store() -> S3ObjectStore:
    if not S3_BUCKET:
        raise RuntimeError("❌ Missing S3_BUCKET in your .env file.")
    logger.info(f"✅ Using object store bucket: {S3_BUCKET}")
    return S3ObjectStore(
        bucket=S3_BUCKET,
        region=S3_REGION,
        prefix=S3_PREFIX,
        public_base_url=S3_PUBLIC_BASE_URL,
        endpoint_url=S3_ENDPOINT_URL,
    )
