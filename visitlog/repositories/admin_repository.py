"""
Administrator accounts backed by the MongoDB ``admins`` collection.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from visitlog.exceptions.base import ConflictError
from visitlog.repositories.mongo_repository import MongoRepository, clean_document, db_operation, to_object_id

logger = logging.getLogger(__name__)


class AdminRepository(MongoRepository):
    """Repository for admin users."""

    collection_name = "admins"

    def ensure_indexes(self) -> None:
        self.collection.create_index([('username', ASCENDING)], unique=True, sparse=True, name='username_unique')
        self.collection.create_index([('email', ASCENDING)], unique=True, sparse=True, name='email_unique')

    @db_operation("find_admin_for_login")
    def find_for_login(self, username: Optional[str], email: Optional[str]) -> Optional[Dict[str, Any]]:
        """Find an admin whose username or email equals either identifier."""
        identifiers = [value for value in (username, email) if value]
        if not identifiers:
            return None
        clauses = []
        for value in identifiers:
            clauses.append({'username': value})
            clauses.append({'email': value})
        return clean_document(self.collection.find_one({'$or': clauses}))

    @db_operation("find_admin_by_id")
    def find_by_id(self, admin_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(admin_id)
        if oid is None:
            return None
        return clean_document(self.collection.find_one({'_id': oid}))

    @db_operation("update_admin")
    def update(self, admin_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        oid = to_object_id(admin_id)
        if oid is None:
            return None
        fields = dict(changes)
        fields['updatedAt'] = datetime.now()
        try:
            admin = self.collection.find_one_and_update(
                {'_id': oid}, {'$set': fields}, return_document=ReturnDocument.AFTER)
        except DuplicateKeyError:
            raise ConflictError("Username or email already in use")
        return clean_document(admin)

    @db_operation("save_admin")
    def upsert(self, username: str, email: str, password_hash: str) -> bool:
        """
        Create an admin, or reset the password of the one matching username/email.

        Returns:
            True when a new admin was created
        """
        now = datetime.now()
        result = self.collection.update_one(
            {'$or': [{'username': username}, {'email': email}]},
            {
                '$set': {'password': password_hash, 'updatedAt': now},
                '$setOnInsert': {'username': username, 'email': email, 'createdAt': now},
            },
            upsert=True,
        )
        created = result.upserted_id is not None
        logger.info(f"{'Created' if created else 'Updated'} admin {username} <{email}>")
        return created
