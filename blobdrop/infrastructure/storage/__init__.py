"""
Blob storage integration for uploaded files.

Supports Azure Blob Storage and R2 (Cloudflare) via S3-compatible API.
Includes mock mode for local development without credentials.
"""

from .client import (
    AzureBlobStoreClient,
    MockBlobStoreClient,
    R2BlobStoreClient,
    StorageConfig,
    StorageError,
    create_blob_store_factory,
)

__all__ = [
    "AzureBlobStoreClient",
    "MockBlobStoreClient",
    "R2BlobStoreClient",
    "StorageConfig",
    "StorageError",
    "create_blob_store_factory",
]
