"""
Error taxonomy for upload operations.

Route handlers translate these into HTTP responses. The underlying cause
(SDK exception, network error) is always chained via ``raise ... from``.
"""


class BlobDropError(Exception):
    """Base class for all application errors."""
    pass


class CredentialUnavailable(BlobDropError):
    """Raised when no credential source yields a usable storage key."""
    pass


class UploadFailed(BlobDropError):
    """Raised when the blob store rejects or fails an upload."""
    pass


class ListFailed(BlobDropError):
    """Raised when the blob store cannot enumerate the container."""
    pass


class FeatureDisabled(BlobDropError):
    """Raised when an operation is switched off by a feature flag."""

    def __init__(self, flag: str) -> None:
        super().__init__(f"Feature '{flag}' is disabled")
        self.flag = flag


class ConfigRefreshFailed(BlobDropError):
    """Raised inside the flag cache when the remote config fetch fails. Never escapes it."""
    pass
