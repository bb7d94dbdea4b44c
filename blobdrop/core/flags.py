"""
Feature flag cache.

Flags are polled from a remote configuration source and kept in memory as a
single immutable snapshot. A refresh builds a complete new mapping and swaps
the reference in one assignment, so readers see either the old snapshot or
the new one, never a mix. Reads take no lock.

A failed refresh keeps the last good snapshot. The cache starts empty and
stays empty until the first successful refresh.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional, Protocol, Sequence

from .errors import ConfigRefreshFailed

logger = logging.getLogger(__name__)

FEATURE_FLAG_PREFIX = ".appconfig.featureflag/"

# Flag names used by the application
ENABLE_GALLERY = "enableGallery"


@dataclass(frozen=True)
class FlagSourceEntry:
    """Raw key/value entry from the remote config source."""
    key: str
    value: Optional[str]


class FlagSource(Protocol):
    """Protocol for a remote key/value configuration source."""

    async def list_entries(self, key_prefix: str) -> Sequence[FlagSourceEntry]:
        """Return all entries whose key starts with key_prefix."""
        ...


def parse_flag_entry(entry: FlagSourceEntry) -> tuple[str, bool]:
    """
    Parse one entry into (flag name, enabled).

    Raises ValueError for anything malformed: non-JSON value, non-object JSON,
    missing or non-boolean ``enabled``, or an empty name.
    """
    name = entry.key.split("/", 1)[1] if "/" in entry.key else ""
    if not name:
        raise ValueError(f"No flag name in key {entry.key!r}")

    try:
        data = json.loads(entry.value or "")
    except json.JSONDecodeError as e:
        raise ValueError(f"Value is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Value is not a JSON object")

    enabled = data.get("enabled")
    if not isinstance(enabled, bool):
        raise ValueError("Missing boolean 'enabled'")

    return name, enabled


class FeatureFlagCache:
    """Process-wide snapshot of feature flags."""

    def __init__(self) -> None:
        self._flags: Mapping[str, bool] = MappingProxyType({})
        self._last_refreshed: Optional[datetime] = None

    @property
    def snapshot(self) -> Mapping[str, bool]:
        """The current read-only flag mapping."""
        return self._flags

    @property
    def is_populated(self) -> bool:
        return self._last_refreshed is not None

    @property
    def last_refreshed(self) -> Optional[datetime]:
        return self._last_refreshed

    def is_enabled(self, name: str, default: bool = False) -> bool:
        return self._flags.get(name, default)

    async def refresh(self, source: FlagSource) -> bool:
        """
        Rebuild the snapshot from the source.

        Returns True when the snapshot was replaced, False when the fetch
        failed and the previous snapshot was kept.
        """
        try:
            entries = await self._fetch(source)
        except ConfigRefreshFailed as e:
            logger.warning(
                "Feature flag refresh failed, keeping previous snapshot",
                extra={"error": str(e), "flag_count": len(self._flags)}
            )
            return False

        flags: dict[str, bool] = {}
        for entry in entries:
            try:
                name, enabled = parse_flag_entry(entry)
            except ValueError as e:
                logger.warning(
                    "Skipping malformed feature flag",
                    extra={"key": entry.key, "error": str(e)}
                )
                continue
            flags[name] = enabled

        self._flags = MappingProxyType(flags)
        self._last_refreshed = datetime.now(timezone.utc)

        logger.info(
            "Refreshed feature flags",
            extra={"flags": dict(flags)}
        )
        return True

    async def _fetch(self, source: FlagSource) -> Sequence[FlagSourceEntry]:
        try:
            return await source.list_entries(FEATURE_FLAG_PREFIX)
        except Exception as e:
            raise ConfigRefreshFailed(f"Could not list feature flags: {e}") from e


class FlagRefresher:
    """
    Background task that refreshes a FeatureFlagCache on a fixed interval.

    Refreshes once immediately, then every ``interval_seconds``. There is no
    backoff on repeated failures. Request handlers never wait on this task.
    """

    def __init__(
        self,
        cache: FeatureFlagCache,
        source: FlagSource,
        interval_seconds: float = 300.0,
    ) -> None:
        self._cache = cache
        self._source = source
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="feature-flag-refresh")
        logger.info(
            "Started feature flag refresher",
            extra={"interval_seconds": self._interval}
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped feature flag refresher")

    async def _run(self) -> None:
        while True:
            try:
                await self._cache.refresh(self._source)
            except Exception:
                # Task boundary: a failed cycle must not kill the loop
                logger.exception("Unexpected error in feature flag refresh")
            await asyncio.sleep(self._interval)
