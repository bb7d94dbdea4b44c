"""
Shared test fixtures.
"""

import pytest

from blobdrop.config.settings import Settings
from blobdrop.core.credentials import CredentialResolver
from blobdrop.core.flags import FeatureFlagCache
from blobdrop.core.uploads import UploadService
from tests.fakes import CountingBlobStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="mock",
        storage_account_name="testaccount",
        storage_account_key="test-key",
        container_name="images",
    )


@pytest.fixture
def flag_cache() -> FeatureFlagCache:
    return FeatureFlagCache()


@pytest.fixture
def blob_store() -> CountingBlobStore:
    return CountingBlobStore()


@pytest.fixture
def resolver() -> CredentialResolver:
    return CredentialResolver.from_sources(
        override="test-key",
        secret_store=None,
        secret_name="StorageAccountKey",
    )


@pytest.fixture
def upload_service(resolver, blob_store, flag_cache) -> UploadService:
    def factory(credential):
        blob_store.credentials.append(credential.secret)
        return blob_store

    return UploadService(
        resolver=resolver,
        client_factory=factory,
        container="images",
        flags=flag_cache,
    )
