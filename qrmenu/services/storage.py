"""
Menu image storage: local media directory or an S3-compatible bucket
"""

from pathlib import Path
from typing import Optional
import uuid

import aioboto3
import structlog

from qrmenu.core.config import get_settings

logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def image_extension(content_type: Optional[str]) -> Optional[str]:
    """File extension for an accepted image content type, else None"""
    return IMAGE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower())


def image_key(item_id: uuid.UUID, extension: str) -> str:
    """One image per item; uploading again overwrites it"""
    return f"{item_id}.{extension}"


class LocalStorage:
    """Stores files under MEDIA_ROOT, served by the app under MEDIA_URL"""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key.lstrip('/')}"

    async def save(self, key: str, body: bytes, content_type: str) -> str:
        path = self.root / key.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)

        # Drop an earlier upload for the same item with another extension
        for stale in path.parent.glob(f"{path.stem}.*"):
            if stale != path:
                stale.unlink()

        path.write_bytes(body)
        logger.info("Stored image locally", key=key, size=len(body))
        return self.public_url(key)


class S3Storage:
    """Uploads public-read objects to an S3-compatible bucket"""

    def __init__(
        self,
        bucket: str,
        endpoint_url: Optional[str],
        region: str,
        access_key: Optional[str],
        secret_key: Optional[str],
        public_base_url: Optional[str],
        prefix: str = "",
    ):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.prefix = prefix.strip("/")
        self._session = aioboto3.Session()

    def object_key(self, key: str) -> str:
        key = key.lstrip("/")
        return f"{self.prefix}/{key}" if self.prefix else key

    def public_url(self, key: str) -> str:
        object_key = self.object_key(key)
        if self.public_base_url:
            return f"{self.public_base_url}/{object_key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{object_key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{object_key}"

    async def save(self, key: str, body: bytes, content_type: str) -> str:
        async with self._session.client(
            "s3",
            region_name=self.region,
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
        ) as s3:
            await s3.put_object(
                Bucket=self.bucket,
                Key=self.object_key(key),
                Body=body,
                ContentType=content_type or "application/octet-stream",
                ACL="public-read",
            )

        logger.info("Uploaded image to bucket", bucket=self.bucket, key=self.object_key(key), size=len(body))
        return self.public_url(key)


def get_storage():
    """Storage backend selected by STORAGE_BACKEND"""
    settings = get_settings()
    if settings.STORAGE_BACKEND == "s3":
        if not settings.S3_BUCKET:
            raise RuntimeError("S3_BUCKET must be set when STORAGE_BACKEND is 's3'")
        return S3Storage(
            bucket=settings.S3_BUCKET,
            endpoint_url=settings.S3_ENDPOINT_URL,
            region=settings.S3_REGION,
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
            prefix=settings.S3_PREFIX,
        )
    return LocalStorage(settings.MEDIA_ROOT, settings.MEDIA_URL)
