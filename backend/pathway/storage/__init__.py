"""
Storage layer for the onboarding engine.

The services only ever see the OnboardingStore port; SqlAlchemyStore
implements it and CachedCatalogStore layers a TTL cache over catalog
reads.
"""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from pathway.core.config import settings

from .port import OnboardingStore
from .sql import SqlAlchemyStore, storage_call
from .cache import CachedCatalogStore


def build_store(session_factory: sessionmaker, cache_enabled: Optional[bool] = None) -> OnboardingStore:
    """Create the SQL store, wrapped in the catalog cache when enabled."""
    store: OnboardingStore = SqlAlchemyStore(session_factory)
    if settings.CATALOG_CACHE_ENABLED if cache_enabled is None else cache_enabled:
        store = CachedCatalogStore(store)
    return store


__all__ = [
    "OnboardingStore",
    "SqlAlchemyStore",
    "CachedCatalogStore",
    "storage_call",
    "build_store",
]
