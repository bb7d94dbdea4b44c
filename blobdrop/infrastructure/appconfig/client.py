"""
Azure App Configuration flag source.

Feature flags live under the ``.appconfig.featureflag/`` key namespace.
Each value is a JSON document with at least an ``enabled`` boolean; parsing
happens in the flag cache, this module only lists raw entries.
"""

import logging
from typing import Any

from ...core.flags import FlagSourceEntry

logger = logging.getLogger(__name__)

# Label filter matching only settings with no label
NO_LABEL = "\0"


class AppConfigFlagSource:
    """Lists configuration settings from Azure App Configuration."""

    def __init__(
        self,
        endpoint: str,
        config_client: Any = None,
    ) -> None:
        self.endpoint = endpoint
        self._client = config_client
        self._credential: Any = None

    def _get_client(self) -> Any:
        """Get or create AzureAppConfigurationClient."""
        if self._client is None:
            from azure.appconfiguration.aio import AzureAppConfigurationClient
            from azure.identity.aio import DefaultAzureCredential

            self._credential = DefaultAzureCredential()
            self._client = AzureAppConfigurationClient(
                base_url=self.endpoint,
                credential=self._credential,
            )

            logger.info(
                "Initialized App Configuration client",
                extra={"endpoint": self.endpoint}
            )
        return self._client

    async def list_entries(self, key_prefix: str) -> list[FlagSourceEntry]:
        """List settings under ``key_prefix`` that carry no label."""
        settings = self._get_client().list_configuration_settings(
            key_filter=f"{key_prefix}*",
            label_filter=NO_LABEL,
        )
        return [
            FlagSourceEntry(key=setting.key, value=setting.value)
            async for setting in settings
        ]

    async def close(self) -> None:
        """Close the SDK client and its credential."""
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None
