"""
Cache-aside wrapper for the catalog half of the storage port.

Paths change rarely and are read on every personalization, so
``find_matching_paths`` and ``get_path_with_steps`` are served from an
in-process TTL cache. Writing a path drops every cached path entry.
All other calls pass straight through to the wrapped store.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
import logging
import threading
import time

from pathway.core.config import settings
from pathway.schemas import PathDefinition, PathFilter, PathRecord

from .port import OnboardingStore


# Configure logging
logger = logging.getLogger(__name__)


KEY_PREFIX = "path:"


@dataclass
class CacheEntry:
    """Cached catalog value."""
    value: Any
    expires_at: float
    hit_count: int = 0


class CachedCatalogStore:
    """
    Wraps an OnboardingStore and caches catalog reads.
    
    Keys look like ``path:<operation>:<params>``.
    """
    
    def __init__(
        self,
        store: OnboardingStore,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the catalog cache.
        
        Args:
            store: Store every call is delegated to
            ttl_seconds: Time-to-live for cache entries, defaults to
                ``settings.CATALOG_CACHE_TTL_SECONDS``
            clock: Monotonic time source
        """
        self.store = store
        self.ttl = settings.CATALOG_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock
        self.cache: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
    
    def __getattr__(self, name: str):
        # Only reached for attributes not defined here
        return getattr(self.store, name)
    
    def _get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                return None
            if self.clock() >= entry.expires_at:
                del self.cache[key]
                return None
            entry.hit_count += 1
            return entry
    
    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            self.cache[key] = CacheEntry(value=value, expires_at=self.clock() + self.ttl)
    
    def invalidate(self, prefix: str = KEY_PREFIX) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        with self._lock:
            keys = [key for key in self.cache if key.startswith(prefix)]
            for key in keys:
                del self.cache[key]
        if keys:
            logger.debug(f"Invalidated {len(keys)} catalog cache entries")
        return len(keys)
    
    def find_matching_paths(self, path_filter: PathFilter) -> List[PathRecord]:
        key = f"{KEY_PREFIX}find_matching_paths:{path_filter.cache_key()}"
        entry = self._get(key)
        if entry is not None:
            return [path.model_copy(deep=True) for path in entry.value]
        
        paths = self.store.find_matching_paths(path_filter)
        self._set(key, [path.model_copy(deep=True) for path in paths])
        return paths
    
    def get_path_with_steps(self, path_id: str) -> Optional[PathRecord]:
        key = f"{KEY_PREFIX}get_path_with_steps:{path_id}"
        entry = self._get(key)
        if entry is not None:
            return entry.value.model_copy(deep=True)
        
        path = self.store.get_path_with_steps(path_id)
        # Misses are not cached so a newly authored path shows up at once
        if path is not None:
            self._set(key, path.model_copy(deep=True))
        return path
    
    def save_path(self, definition: PathDefinition) -> PathRecord:
        path = self.store.save_path(definition)
        self.invalidate(KEY_PREFIX)
        return path
