"""Secret store integration (Azure Key Vault)."""

from .client import KeyVaultSecretStore

__all__ = ["KeyVaultSecretStore"]
