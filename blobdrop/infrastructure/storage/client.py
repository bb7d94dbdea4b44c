"""
Blob store clients.

Three implementations of the BlobStoreClient protocol:
- AzureBlobStoreClient: Azure Blob Storage with a shared account key
- R2BlobStoreClient: Cloudflare R2 (S3-compatible) through boto3
- MockBlobStoreClient: in-memory storage for local development

A client is built per operation from the freshly resolved credential and
used as an async context manager, so SDK connections are closed promptly.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from ...core.credentials import Credential
from ...core.uploads import BlobStoreClient, BlobStoreFactory

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Non-secret blob store configuration.

    The secret part (account key / secret access key) is never stored
    here; it arrives per operation as a Credential.
    """
    backend: str
    account_name: str = ""
    # R2 only
    access_key_id: str = ""
    endpoint_url: str = ""
    public_base_url: Optional[str] = None
    region: str = "auto"  # R2 uses 'auto' for region


# ---------------------------------------------------------------------------
# Azure Blob Storage
# ---------------------------------------------------------------------------

class AzureBlobStoreClient:
    """Azure Blob Storage client using the azure-storage-blob aio SDK."""

    def __init__(
        self,
        account_name: str,
        account_key: str,
        service_client: Any = None,
    ) -> None:
        self.account_name = account_name
        self.account_url = f"https://{account_name}.blob.core.windows.net"
        self._account_key = account_key
        self._client = service_client

    def _get_client(self) -> Any:
        """Get or create BlobServiceClient."""
        if self._client is None:
            from azure.core.credentials import AzureNamedKeyCredential
            from azure.storage.blob.aio import BlobServiceClient

            self._client = BlobServiceClient(
                account_url=self.account_url,
                credential=AzureNamedKeyCredential(self.account_name, self._account_key),
            )
        return self._client

    async def __aenter__(self) -> "AzureBlobStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def ensure_container(self, container: str) -> None:
        from azure.core.exceptions import ResourceExistsError

        container_client = self._get_client().get_container_client(container)
        try:
            await container_client.create_container()
            logger.info("Created container", extra={"container": container})
        except ResourceExistsError:
            pass

    async def put_object(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        from azure.storage.blob import ContentSettings

        container_client = self._get_client().get_container_client(container)
        blob_client = container_client.get_blob_client(key)

        await blob_client.upload_blob(
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
        )

        return blob_client.url

    async def list_objects(self, container: str) -> list[str]:
        container_client = self._get_client().get_container_client(container)
        return [blob.name async for blob in container_client.list_blobs()]

    def object_url(self, container: str, key: str) -> str:
        return f"{self.account_url}/{container}/{quote(key)}"

    async def close(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


# ---------------------------------------------------------------------------
# Cloudflare R2 (S3-compatible)
# ---------------------------------------------------------------------------

class R2BlobStoreClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. boto3 is synchronous, so each
    call runs in a worker thread with asyncio.to_thread.
    """

    def __init__(
        self,
        config: StorageConfig,
        secret_access_key: str,
        s3_client: Any = None,
    ) -> None:
        self._config = config

        if s3_client is None:
            import boto3
            from botocore.config import Config

            # R2 requires v4 signatures and path-style addressing
            boto_config = Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},
            )

            s3_client = boto3.client(
                's3',
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

    async def __aenter__(self) -> "R2BlobStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await asyncio.to_thread(self._s3_client.close)

    async def ensure_container(self, container: str) -> None:
        await asyncio.to_thread(self._ensure_bucket, container)

    def _ensure_bucket(self, container: str) -> None:
        from botocore.exceptions import ClientError

        try:
            self._s3_client.head_bucket(Bucket=container)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code not in ("404", "NoSuchBucket", "NotFound"):
                raise
            self._s3_client.create_bucket(Bucket=container)
            logger.info("Created bucket", extra={"bucket": container})

    async def put_object(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        await asyncio.to_thread(
            self._s3_client.put_object,
            Bucket=container,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return self.object_url(container, key)

    async def list_objects(self, container: str) -> list[str]:
        return await asyncio.to_thread(self._list_keys, container)

    def _list_keys(self, container: str) -> list[str]:
        paginator = self._s3_client.get_paginator("list_objects_v2")
        names = []
        for page in paginator.paginate(Bucket=container):
            names.extend(obj["Key"] for obj in page.get("Contents", []))
        return names

    def object_url(self, container: str, key: str) -> str:
        # A public bucket domain already maps to a single bucket
        if self._config.public_base_url:
            return f"{self._config.public_base_url.rstrip('/')}/{quote(key)}"
        return f"{self._config.endpoint_url.rstrip('/')}/{container}/{quote(key)}"


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockBlobStoreClient:
    """
    In-memory blob store for local development and tests.

    Objects live in a dict keyed by (container, key). "URLs" are mock URIs.
    """

    def __init__(self) -> None:
        self._containers: set[str] = set()
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        logger.info("Initialized mock blob store (in-memory)")

    async def __aenter__(self) -> "MockBlobStoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        pass

    async def ensure_container(self, container: str) -> None:
        self._containers.add(container)

    async def put_object(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        if container not in self._containers:
            raise StorageError(f"Container not found: {container}")

        self._objects[(container, key)] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"container": container, "key": key, "size_bytes": len(data)}
        )

        return self.object_url(container, key)

    async def list_objects(self, container: str) -> list[str]:
        return sorted(key for (name, key) in self._objects if name == container)

    def object_url(self, container: str, key: str) -> str:
        return f"mock://storage/{container}/{key}"

    def get_object(self, container: str, key: str) -> tuple[bytes, str]:
        """Return (data, content_type) of a stored object."""
        try:
            return self._objects[(container, key)]
        except KeyError:
            raise StorageError(f"Object not found: {container}/{key}")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_blob_store_factory(
    config: StorageConfig,
    mock_client: Optional[MockBlobStoreClient] = None,
) -> BlobStoreFactory:
    """
    Build the per-operation client factory for the configured backend.

    The returned callable takes a resolved Credential and returns a client
    bound to it. The mock backend ignores the credential and always hands
    out the same in-memory store.
    """
    if config.backend == "mock":
        store = mock_client or MockBlobStoreClient()

        def mock_factory(credential: Credential) -> BlobStoreClient:
            return store

        return mock_factory

    if config.backend == "azure":
        def azure_factory(credential: Credential) -> BlobStoreClient:
            return AzureBlobStoreClient(config.account_name, credential.secret)

        return azure_factory

    if config.backend == "r2":
        def r2_factory(credential: Credential) -> BlobStoreClient:
            return R2BlobStoreClient(config, credential.secret)

        return r2_factory

    raise ValueError(f"Unknown storage backend: {config.backend}")
