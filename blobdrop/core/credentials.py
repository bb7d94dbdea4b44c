"""
Storage credential resolution.

The storage key can come from two places:
- A direct override (STORAGE_ACCOUNT_KEY), for environments where the
  secret store is unreachable or deliberately bypassed
- A secret store (Key Vault), fetched with the ambient identity

Sources are modelled as an ordered list of named strategies. Each strategy
returns the secret or None when it isn't configured. The first value wins.
A configured source that fails raises instead of falling through, so a broken
secret store never silently degrades to a weaker source.

Credentials are resolved on every call. Nothing is cached, so a rotated key
is picked up by the next request.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from .errors import CredentialUnavailable

logger = logging.getLogger(__name__)


class SecretStore(Protocol):
    """Protocol for a remote secret store."""

    async def get_secret(self, name: str) -> Optional[str]:
        """Return the current value of the named secret."""
        ...


@dataclass(frozen=True)
class Credential:
    """
    A resolved storage key and the strategy that produced it.

    The secret is excluded from repr so it can't leak through logging
    or tracebacks.
    """
    secret: str = field(repr=False)
    source: str


@dataclass(frozen=True)
class CredentialStrategy:
    """A named credential source. ``fetch`` returns None when not configured."""
    name: str
    fetch: Callable[[], Awaitable[Optional[str]]]


def override_strategy(value: Optional[str]) -> CredentialStrategy:
    """Use a directly configured key when one is set."""

    async def fetch() -> Optional[str]:
        return value or None

    return CredentialStrategy(name="override", fetch=fetch)


def secret_store_strategy(
    store: Optional[SecretStore],
    secret_name: str,
) -> CredentialStrategy:
    """Fetch the key from the secret store when one is configured."""

    async def fetch() -> Optional[str]:
        if store is None:
            return None

        try:
            value = await store.get_secret(secret_name)
        except Exception as e:
            logger.error(
                "Secret store lookup failed",
                extra={"secret_name": secret_name, "error": str(e)}
            )
            raise CredentialUnavailable(
                f"Could not read secret '{secret_name}' from secret store: {e}"
            ) from e

        if not value:
            raise CredentialUnavailable(f"Secret '{secret_name}' has no value")

        return value

    return CredentialStrategy(name="secret-store", fetch=fetch)


class CredentialResolver:
    """Evaluates credential strategies in order on every call."""

    def __init__(self, strategies: Sequence[CredentialStrategy]) -> None:
        self._strategies = list(strategies)

    @classmethod
    def from_sources(
        cls,
        override: Optional[str],
        secret_store: Optional[SecretStore],
        secret_name: str,
    ) -> "CredentialResolver":
        """Standard chain: direct override first, then the secret store."""
        return cls([
            override_strategy(override),
            secret_store_strategy(secret_store, secret_name),
        ])

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self._strategies]

    async def resolve(self) -> Credential:
        """
        Return the first credential any strategy yields.

        Raises CredentialUnavailable when no strategy is configured, or
        when a configured strategy fails.
        """
        for strategy in self._strategies:
            value = await strategy.fetch()
            if value is None:
                continue

            logger.info(
                "Resolved storage credential",
                extra={"source": strategy.name}
            )
            return Credential(secret=value, source=strategy.name)

        logger.error(
            "No storage credential source configured",
            extra={"strategies": self.strategy_names}
        )
        raise CredentialUnavailable(
            "No storage credential configured. Set STORAGE_ACCOUNT_KEY or KEY_VAULT_URL."
        )
