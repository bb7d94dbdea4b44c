"""
Upload and listing orchestration.

UploadService is thin glue: it names the blob, resolves a fresh credential,
opens a blob store client for that credential and performs a single call
against it. Blob store failures are wrapped in UploadFailed / ListFailed
with the original exception chained.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .credentials import Credential, CredentialResolver
from .errors import FeatureDisabled, ListFailed, UploadFailed
from .flags import ENABLE_GALLERY, FeatureFlagCache
from .naming import build_blob_name, current_millis

logger = logging.getLogger(__name__)


class BlobStoreClient(Protocol):
    """
    Protocol for blob store operations.

    Clients are async context managers: one is opened per operation
    and closed when it finishes.
    """

    async def __aenter__(self) -> "BlobStoreClient":
        ...

    async def __aexit__(self, *exc_info) -> None:
        ...

    async def ensure_container(self, container: str) -> None:
        """Create the container if it doesn't exist."""
        ...

    async def put_object(
        self,
        container: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> str:
        """Write the object in one call and return its URL."""
        ...

    async def list_objects(self, container: str) -> list[str]:
        """Return the names of all objects in the container."""
        ...

    def object_url(self, container: str, key: str) -> str:
        """Public address of an object."""
        ...


BlobStoreFactory = Callable[[Credential], BlobStoreClient]


@dataclass(frozen=True)
class StoredObject:
    """A blob and its public address."""
    name: str
    url: str


class UploadService:
    """Stores uploads and lists stored objects."""

    def __init__(
        self,
        resolver: CredentialResolver,
        client_factory: BlobStoreFactory,
        container: str,
        flags: FeatureFlagCache,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._resolver = resolver
        self._client_factory = client_factory
        self._container = container
        self._flags = flags
        self._clock = clock or current_millis

    @property
    def container(self) -> str:
        return self._container

    @property
    def gallery_enabled(self) -> bool:
        # Absent flag means enabled; only an explicit false turns it off
        return self._flags.is_enabled(ENABLE_GALLERY, default=True)

    async def store(
        self,
        data: bytes,
        original_name: str,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        """
        Upload bytes under a unique, sanitized key.

        Raises CredentialUnavailable if no storage key can be resolved,
        UploadFailed for any blob store error.
        """
        blob_name = build_blob_name(original_name, self._clock())
        content_type = content_type or "application/octet-stream"

        credential = await self._resolver.resolve()

        try:
            async with self._client_factory(credential) as client:
                await client.ensure_container(self._container)
                url = await client.put_object(
                    self._container,
                    blob_name,
                    data,
                    content_type,
                )
        except Exception as e:
            logger.error(
                "Upload failed",
                extra={
                    "blob_name": blob_name,
                    "container": self._container,
                    "error": str(e),
                }
            )
            raise UploadFailed(str(e)) from e

        logger.info(
            "Uploaded blob",
            extra={
                "blob_name": blob_name,
                "container": self._container,
                "content_type": content_type,
                "size_bytes": len(data),
            }
        )

        return StoredObject(name=blob_name, url=url)

    async def list(self) -> list[StoredObject]:
        """
        List every object in the container with its public URL.

        Raises FeatureDisabled (without touching the blob store) when the
        gallery flag is off, CredentialUnavailable if no storage key can be
        resolved, ListFailed for any blob store error.
        """
        if not self.gallery_enabled:
            logger.info("Listing blocked by feature flag", extra={"flag": ENABLE_GALLERY})
            raise FeatureDisabled(ENABLE_GALLERY)

        credential = await self._resolver.resolve()

        try:
            async with self._client_factory(credential) as client:
                names = await client.list_objects(self._container)
                items = [
                    StoredObject(name=name, url=client.object_url(self._container, name))
                    for name in names
                ]
        except Exception as e:
            logger.error(
                "Listing failed",
                extra={"container": self._container, "error": str(e)}
            )
            raise ListFailed(str(e)) from e

        logger.debug(
            "Listed blobs",
            extra={"container": self._container, "count": len(items)}
        )

        return items
