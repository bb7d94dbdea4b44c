"""Feature flag source (Azure App Configuration)."""

from .client import AppConfigFlagSource

__all__ = ["AppConfigFlagSource"]
