"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and an optional .env file)
with sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The mock storage backend enables local development without a cloud account.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "blobdrop"
    api_version: str = "v1"
    port: int = Field(
        default=3000,
        description="Port used when running the module directly."
    )

    # Secret store (Azure Key Vault)
    key_vault_url: Optional[str] = Field(
        default=None,
        description="Key Vault URL holding the storage key. Optional when STORAGE_ACCOUNT_KEY is set."
    )
    storage_key_secret_name: str = Field(
        default="StorageAccountKey",
        description="Name of the Key Vault secret holding the storage key."
    )
    storage_account_key: Optional[str] = Field(
        default=None,
        description="Direct storage key override. Bypasses Key Vault when set."
    )

    # Blob storage
    storage_backend: Literal["azure", "r2", "mock"] = Field(
        default="azure",
        description="Blob store implementation. 'mock' keeps uploads in memory."
    )
    storage_account_name: str = Field(
        default="",
        description="Storage account name. Required unless using the mock backend."
    )
    container_name: str = Field(
        default="images",
        description="Container (bucket) that receives uploads."
    )

    # R2/S3 Storage Configuration (when storage_backend="r2")
    r2_account_id: str = Field(
        default="",
        description="Cloudflare account ID for R2"
    )
    r2_access_key_id: str = Field(
        default="",
        description="R2 access key ID. The secret access key is the resolved storage credential."
    )
    r2_endpoint_url: Optional[str] = Field(
        default=None,
        description="R2 endpoint URL. Auto-constructed from account_id if not provided."
    )
    r2_public_base_url: Optional[str] = Field(
        default=None,
        description="Public base URL for objects (e.g. an r2.dev or custom domain)."
    )

    # Remote configuration (Azure App Configuration)
    app_config_endpoint: Optional[str] = Field(
        default=None,
        description="App Configuration endpoint. Feature flags are disabled when unset."
    )
    flag_refresh_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between feature flag refreshes."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def r2_endpoint(self) -> str:
        """
        Construct R2 endpoint URL from account ID.

        R2 endpoints follow the pattern: https://{account_id}.r2.cloudflarestorage.com
        """
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    @property
    def flags_enabled(self) -> bool:
        """Feature flags are only polled when a remote config endpoint exists."""
        return bool(self.app_config_endpoint)

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set for the selected backend.

        Returns list of missing required fields.
        This is separate from Pydantic validation because requirements
        depend on which storage backend is selected.
        """
        missing = []

        if self.storage_backend == "mock":
            return missing

        if not self.storage_account_name and self.storage_backend == "azure":
            missing.append("STORAGE_ACCOUNT_NAME")

        # Need either a direct key or somewhere to fetch it from
        if not self.storage_account_key and not self.key_vault_url:
            missing.append("STORAGE_ACCOUNT_KEY or KEY_VAULT_URL")

        if self.storage_backend == "r2":
            if not self.r2_account_id and not self.r2_endpoint_url:
                missing.append("R2_ACCOUNT_ID")
            if not self.r2_access_key_id:
                missing.append("R2_ACCESS_KEY_ID")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
