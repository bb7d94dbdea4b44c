"""
Core upload logic.

This package is framework-agnostic - it doesn't import FastAPI or any cloud
SDK. Collaborators (secret store, blob store, flag source) are described as
protocols so the logic can be tested with in-memory fakes.
"""

from .credentials import Credential, CredentialResolver, CredentialStrategy
from .errors import (
    BlobDropError,
    ConfigRefreshFailed,
    CredentialUnavailable,
    FeatureDisabled,
    ListFailed,
    UploadFailed,
)
from .flags import FeatureFlagCache, FlagRefresher, FlagSourceEntry
from .naming import build_blob_name, sanitize_filename
from .uploads import StoredObject, UploadService

__all__ = [
    "BlobDropError",
    "ConfigRefreshFailed",
    "Credential",
    "CredentialResolver",
    "CredentialStrategy",
    "CredentialUnavailable",
    "FeatureDisabled",
    "FeatureFlagCache",
    "FlagRefresher",
    "FlagSourceEntry",
    "ListFailed",
    "StoredObject",
    "UploadFailed",
    "UploadService",
    "build_blob_name",
    "sanitize_filename",
]
