"""
Simple thread-safe memory cache with per-entry expiry.
"""
import threading
import time
from typing import Any, Optional


class MemoryCache:
    def __init__(self, clock=time.time):
        self.cache = {}
        self.clock = clock
        self.lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value; ttl in seconds, None keeps it until deleted."""
        expiry = self.clock() + ttl if ttl is not None else None
        with self.lock:
            self.cache[key] = (value, expiry)

    def get(self, key: str, default: Any = None) -> Any:
        with self.lock:
            entry = self.cache.get(key)
            if entry is None:
                return default
            value, expiry = entry
            if expiry is not None and self.clock() >= expiry:
                del self.cache[key]
                return default
            return value

    def __contains__(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def delete(self, key: str) -> None:
        with self.lock:
            self.cache.pop(key, None)

    def clear_expired(self) -> int:
        """Clear expired entries and return count."""
        current_time = self.clock()
        with self.lock:
            expired_keys = [
                key for key, (_, expiry) in self.cache.items()
                if expiry is not None and current_time >= expiry
            ]
            for key in expired_keys:
                del self.cache[key]

        return len(expired_keys)

    def __len__(self) -> int:
        with self.lock:
            return len(self.cache)
