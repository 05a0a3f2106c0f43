"""
Shared token revocation list stored in MongoDB.
"""
import hashlib
import logging
from datetime import datetime, timedelta, timezone

from pymongo import ASCENDING

from visitlog.repositories.mongo_repository import MongoRepository, db_operation
from visitlog.services.token_revocation import TokenRevocationStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    # MongoDB hands back naive UTC datetimes
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _token_key(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class MongoTokenRevocationStore(MongoRepository, TokenRevocationStore):
    """Revoked tokens; a TTL index drops each entry once the token has expired."""

    collection_name = "revoked_tokens"

    def ensure_indexes(self) -> None:
        self.collection.create_index([('tokenHash', ASCENDING)], unique=True, name='tokenHash_unique')
        self.collection.create_index([('expiresAt', ASCENDING)], expireAfterSeconds=0, name='expiresAt_ttl')

    @db_operation("revoke_token")
    def revoke(self, token: str, ttl: float) -> None:
        expires_at = _utcnow() + timedelta(seconds=max(0.0, ttl))
        self.collection.update_one(
            {'tokenHash': _token_key(token)},
            {'$set': {'expiresAt': expires_at}},
            upsert=True,
        )
        logger.info(f"Token revoked until {expires_at.isoformat()} UTC")

    @db_operation("check_token_revoked")
    def is_revoked(self, token: str) -> bool:
        # The TTL monitor runs about once a minute, so check expiry explicitly
        entry = self.collection.find_one({'tokenHash': _token_key(token)})
        return bool(entry) and entry['expiresAt'] > _utcnow()
