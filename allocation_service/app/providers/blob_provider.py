"""
Blob storage providers for variant images
"""

import asyncio
import uuid
from io import BytesIO
from pathlib import Path
from typing import Protocol

from imagekitio import ImageKit
from imagekitio.models.UploadFileRequestOptions import UploadFileRequestOptions
from pydantic import BaseModel

from ..core.setting import AllocationSettings, get_settings
from ..schemas.allocation import StagedImage
from ..utils.logging import setup_allocation_logging as setup_logging

logger = setup_logging("allocation_service.blob_provider", log_level=get_settings().LOG_LEVEL)


class UploadedBlob(BaseModel):
    path: str
    public_url: str


class BlobProvider(Protocol):
    async def upload(self, image: StagedImage, bucket: str) -> UploadedBlob: ...


class ImageKitBlobProvider:
    """Uploads images to ImageKit, one folder per bucket"""

    def __init__(self, public_key: str, private_key: str, url_endpoint: str):
        if not private_key or not url_endpoint:
            raise ValueError("IMAGEKIT_PRIVATE_KEY and IMAGEKIT_URL_ENDPOINT are required")

        self.client = ImageKit(
            public_key=public_key,
            private_key=private_key,
            url_endpoint=url_endpoint,
        )

    async def upload(self, image: StagedImage, bucket: str) -> UploadedBlob:
        # The SDK is blocking
        upload = await asyncio.to_thread(self._upload_sync, image, bucket)

        if not upload or not upload.url:
            raise RuntimeError("Upload returned no URL")

        logger.info(
            "Variant image uploaded",
            extra={
                "variant_name": image.variant_name,
                "bucket": bucket,
                "file_id": upload.file_id,
                "size_bytes": len(image.content),
            },
        )
        return UploadedBlob(path=upload.file_path or upload.name, public_url=upload.url)

    def _upload_sync(self, image: StagedImage, bucket: str):
        options = UploadFileRequestOptions(
            folder=bucket,
            use_unique_file_name=True,
            is_private_file=False,
        )
        return self.client.upload_file(
            file=BytesIO(image.content),
            file_name=image.filename,
            options=options,
        )


class LocalBlobProvider:
    """Writes images under a media root; for development setups"""

    def __init__(self, media_root: str, base_url: str):
        self.media_root = Path(media_root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, image: StagedImage, bucket: str) -> UploadedBlob:
        suffix = Path(image.filename).suffix or ".jpg"
        relative_path = f"{bucket}/{uuid.uuid4().hex}{suffix}"
        await asyncio.to_thread(self._write, relative_path, image.content)

        logger.info(
            "Variant image stored locally",
            extra={
                "variant_name": image.variant_name,
                "bucket": bucket,
                "path": relative_path,
            },
        )
        return UploadedBlob(
            path=relative_path, public_url=f"{self.base_url}/{relative_path}"
        )

    def _write(self, relative_path: str, content: bytes) -> None:
        target = self.media_root / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)


def create_blob_provider(settings: AllocationSettings) -> BlobProvider:
    if settings.BLOB_PROVIDER == "local":
        return LocalBlobProvider(settings.MEDIA_ROOT, settings.MEDIA_BASE_URL)
    if settings.BLOB_PROVIDER == "imagekit":
        return ImageKitBlobProvider(
            settings.IMAGEKIT_PUBLIC_KEY,
            settings.IMAGEKIT_PRIVATE_KEY,
            settings.IMAGEKIT_URL_ENDPOINT,
        )
    raise ValueError(f"Unknown BLOB_PROVIDER: {settings.BLOB_PROVIDER}")
