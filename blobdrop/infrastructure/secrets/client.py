"""
Azure Key Vault secret store.

Authenticates with DefaultAzureCredential, so the identity comes from the
environment (managed identity, workload identity, Azure CLI login, ...).
The SDK client is created lazily and reused for the life of the process;
the secret value itself is fetched on every call.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class KeyVaultSecretStore:
    """Reads secrets from Azure Key Vault using the aio SDK."""

    def __init__(
        self,
        vault_url: str,
        secret_client: Any = None,
    ) -> None:
        self.vault_url = vault_url
        self._client = secret_client
        self._credential: Any = None

    def _get_client(self) -> Any:
        """Get or create SecretClient."""
        if self._client is None:
            from azure.identity.aio import DefaultAzureCredential
            from azure.keyvault.secrets.aio import SecretClient

            self._credential = DefaultAzureCredential()
            self._client = SecretClient(vault_url=self.vault_url, credential=self._credential)

            logger.info(
                "Initialized Key Vault client",
                extra={"vault_url": self.vault_url}
            )
        return self._client

    async def get_secret(self, name: str) -> Optional[str]:
        secret = await self._get_client().get_secret(name)
        return secret.value

    async def close(self) -> None:
        """Close the SDK client and its credential."""
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None
