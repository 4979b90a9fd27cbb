"""Local persistence for the current user and offline snapshots."""

from finance_tracker.services.cache.local_cache import LocalCache

__all__ = ["LocalCache"]
