"""
MongoDB connection handling shared by all repositories.
"""
import functools
import logging
import threading
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from visitlog.config.settings import Config
from visitlog.exceptions.base import AppError, DatabaseError

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_client_lock = threading.Lock()


def get_client() -> MongoClient:
    """Return the process-wide MongoClient, creating it on first use."""
    global _client
    if _client is not None:
        return _client

    with _client_lock:
        if _client is None:
            if not Config.MONGODB_URI:
                raise DatabaseError("MONGODB_URI not configured")
            _client = MongoClient(
                Config.MONGODB_URI,
                serverSelectionTimeoutMS=Config.DB_SERVER_SELECTION_TIMEOUT_MS,
                maxPoolSize=Config.DB_CONNECTION_POOL_SIZE,
                maxIdleTimeMS=30000,
                retryWrites=True,
                retryReads=True,
                tz_aware=False,
            )
            logger.info("MongoDB client created")
    return _client


def get_database():
    """Return the configured application database."""
    return get_client()[Config.MONGODB_DATABASE]


def close_client() -> None:
    """Close the shared client (application shutdown)."""
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("MongoDB client closed")


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Convert a string id to an ObjectId; malformed ids give None."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        return None
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def clean_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert top-level ObjectId references to strings for the service layer."""
    if doc is None:
        return None
    for key in ('_id', 'studentId'):
        if isinstance(doc.get(key), ObjectId):
            doc[key] = str(doc[key])
    return doc


def db_operation(operation: str) -> Callable:
    """Decorator turning driver failures into DatabaseError with the operation name."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except AppError:
                raise
            except PyMongoError as e:
                logger.error(f"Database operation '{operation}' failed: {e}")
                raise DatabaseError(f"Database operation '{operation}' failed", details={"error": str(e)})
        return wrapper
    return decorator


class MongoRepository:
    """Base class for collection-backed repositories."""

    collection_name: str = ""

    def __init__(self, db=None):
        self.db = db if db is not None else get_database()
        self.collection = self.db[self.collection_name]

    def ensure_indexes(self) -> None:
        """Create the indexes this repository relies on."""

    def ping(self) -> bool:
        """Check the database is reachable."""
        try:
            self.db.command('ping')
            return True
        except PyMongoError as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False
