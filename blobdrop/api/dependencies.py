"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never build their own clients, so tests can
swap any of them through ``app.dependency_overrides``.

Some objects are process-wide and live in module globals:
- the feature flag cache (one snapshot per process)
- the Key Vault and App Configuration clients (reused connections)
- the mock blob store (uploads persist across requests in mock mode)

``close_shared_clients`` is called from the application lifespan on shutdown.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.credentials import CredentialResolver
from ..core.flags import FeatureFlagCache
from ..core.uploads import BlobStoreFactory, UploadService
from ..infrastructure.appconfig.client import AppConfigFlagSource
from ..infrastructure.secrets.client import KeyVaultSecretStore
from ..infrastructure.storage.client import (
    MockBlobStoreClient,
    StorageConfig,
    create_blob_store_factory,
)

logger = logging.getLogger(__name__)

# Process-wide instances
_flag_cache = FeatureFlagCache()
_secret_store: Optional[KeyVaultSecretStore] = None
_flag_source: Optional[AppConfigFlagSource] = None
_mock_blob_store: Optional[MockBlobStoreClient] = None


# ---------------------------------------------------------------------------
# Shared Clients
# ---------------------------------------------------------------------------

def get_flag_cache() -> FeatureFlagCache:
    """Provide the process-wide feature flag cache."""
    return _flag_cache


def get_secret_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[KeyVaultSecretStore]:
    """
    Provide the Key Vault client, or None when no vault is configured.

    The client is created once per process and reused; secrets are still
    fetched on every resolution. It is only replaced after
    close_shared_clients().
    """
    global _secret_store

    if not settings.key_vault_url:
        return None

    if _secret_store is None:
        _secret_store = KeyVaultSecretStore(settings.key_vault_url)
        logger.info("Created shared Key Vault secret store")

    return _secret_store


def get_flag_source(settings: Settings) -> Optional[AppConfigFlagSource]:
    """Provide the App Configuration client, or None when flags are disabled."""
    global _flag_source

    if not settings.flags_enabled:
        return None

    if _flag_source is None:
        _flag_source = AppConfigFlagSource(settings.app_config_endpoint)
        logger.info("Created shared App Configuration flag source")

    return _flag_source


async def close_shared_clients() -> None:
    """Close process-wide SDK clients. Called on application shutdown."""
    global _secret_store, _flag_source

    if _secret_store is not None:
        await _secret_store.close()
        _secret_store = None

    if _flag_source is not None:
        await _flag_source.close()
        _flag_source = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_credential_resolver(
    settings: Annotated[Settings, Depends(get_settings)],
    secret_store: Annotated[Optional[KeyVaultSecretStore], Depends(get_secret_store)],
) -> CredentialResolver:
    """Provide the credential chain: direct override first, then Key Vault."""
    return CredentialResolver.from_sources(
        override=settings.storage_account_key,
        secret_store=secret_store,
        secret_name=settings.storage_key_secret_name,
    )


def get_blob_store_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BlobStoreFactory:
    """
    Provide the blob store client factory for the configured backend.

    In mock mode, we reuse the same in-memory store across requests
    so that uploads persist during the session.
    """
    global _mock_blob_store

    config = StorageConfig(
        backend=settings.storage_backend,
        account_name=settings.storage_account_name,
        access_key_id=settings.r2_access_key_id,
        endpoint_url=settings.r2_endpoint,
        public_base_url=settings.r2_public_base_url,
    )

    if settings.storage_backend == "mock" and _mock_blob_store is None:
        _mock_blob_store = MockBlobStoreClient()
        logger.info("Created shared mock blob store for session")

    return create_blob_store_factory(config, mock_client=_mock_blob_store)


def get_upload_service(
    settings: Annotated[Settings, Depends(get_settings)],
    resolver: Annotated[CredentialResolver, Depends(get_credential_resolver)],
    client_factory: Annotated[BlobStoreFactory, Depends(get_blob_store_factory)],
    flags: Annotated[FeatureFlagCache, Depends(get_flag_cache)],
) -> UploadService:
    """Provide the upload service. Cheap to build, so one per request."""
    return UploadService(
        resolver=resolver,
        client_factory=client_factory,
        container=settings.container_name,
        flags=flags,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
FlagCacheDep = Annotated[FeatureFlagCache, Depends(get_flag_cache)]
UploadServiceDep = Annotated[UploadService, Depends(get_upload_service)]
