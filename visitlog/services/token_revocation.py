"""
Revocation of bearer tokens before their natural expiry (logout).
"""
import logging
from abc import ABC, abstractmethod

from visitlog.utils.memory_cache import MemoryCache

logger = logging.getLogger(__name__)


class TokenRevocationStore(ABC):
    """Remembers revoked tokens until they would have expired anyway."""

    @abstractmethod
    def revoke(self, token: str, ttl: float) -> None:
        """Mark ``token`` revoked for ``ttl`` seconds."""

    @abstractmethod
    def is_revoked(self, token: str) -> bool:
        """True while ``token`` is revoked."""


class InMemoryTokenRevocationStore(TokenRevocationStore):
    """
    Process-local revocation list.

    Only correct for a single process; run several instances with
    TOKEN_REVOCATION_BACKEND=mongo instead.
    """

    def __init__(self, cache: MemoryCache = None):
        self.cache = cache or MemoryCache()

    def revoke(self, token: str, ttl: float) -> None:
        self.cache.clear_expired()
        self.cache.set(token, True, ttl=max(0.0, ttl))

    def is_revoked(self, token: str) -> bool:
        return token in self.cache


def build_revocation_store(backend: str, db=None) -> TokenRevocationStore:
    """Create the revocation store selected by configuration."""
    if backend == "memory":
        logger.warning("Using in-memory token revocation; logouts are not shared between instances")
        return InMemoryTokenRevocationStore()

    from visitlog.repositories.token_repository import MongoTokenRevocationStore
    return MongoTokenRevocationStore(db)
