from .blob_provider import (
    BlobProvider,
    ImageKitBlobProvider,
    LocalBlobProvider,
    UploadedBlob,
    create_blob_provider,
)

__all__ = [
    "BlobProvider",
    "ImageKitBlobProvider",
    "LocalBlobProvider",
    "UploadedBlob",
    "create_blob_provider",
]
