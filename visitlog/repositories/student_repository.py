"""
Student directory backed by the MongoDB ``students`` collection.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, ExecutionTimeout, OperationFailure

from visitlog.config.settings import Config
from visitlog.exceptions.base import ConflictError
from visitlog.repositories.mongo_repository import MongoRepository, clean_document, db_operation, to_object_id

logger = logging.getLogger(__name__)

# Fields returned alongside visit rows
STUDENT_SUMMARY_FIELDS = {
    'firstName': 1, 'lastName': 1, 'middleInitial': 1, 'photo': 1,
    'level': 1, 'course': 1, 'studentNo': 1,
}


class StudentRepository(MongoRepository):
    """Repository for student records."""

    collection_name = "students"

    def ensure_indexes(self) -> None:
        self.collection.create_index([('studentNo', ASCENDING)], unique=True, name='studentNo_unique')
        self.collection.create_index([('createdAt', ASCENDING)], name='createdAt')
        self.collection.create_index([('visits.timeIn', DESCENDING)], name='embedded_visits_timeIn')

    @db_operation("find_student_by_id")
    def find_by_id(self, student_id: str) -> Optional[Dict[str, Any]]:
        """Get a student by database id; malformed ids are a miss."""
        oid = to_object_id(student_id)
        if oid is None:
            return None
        return clean_document(self.collection.find_one({'_id': oid}))

    @db_operation("find_student_by_number")
    def find_by_student_no(self, value: str, fuzzy: bool = False) -> Optional[Dict[str, Any]]:
        """
        Get a student by student number.

        Args:
            value: Exact student number, or a regular expression when fuzzy
            fuzzy: Treat value as a case-insensitive pattern

        Returns:
            The first matching student or None
        """
        if not value:
            return None

        if not fuzzy:
            return clean_document(self.collection.find_one({'studentNo': value}))

        try:
            student = self.collection.find_one(
                {'studentNo': {'$regex': value, '$options': 'i'}},
                max_time_ms=Config.FUZZY_MATCH_TIMEOUT_MS,
            )
        except (ExecutionTimeout, OperationFailure) as e:
            logger.warning(f"Fuzzy student number lookup abandoned for pattern {value!r}: {e}")
            return None
        return clean_document(student)

    @db_operation("student_exists")
    def exists(self, student_no: str) -> bool:
        """Check whether a student number is already taken."""
        return self.collection.count_documents({'studentNo': student_no}, limit=1) > 0

    @db_operation("create_student")
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a student; raises ConflictError for a duplicate student number."""
        now = datetime.now()
        document = dict(data)
        document.setdefault('visits', [])
        document.setdefault('createdAt', now)
        document['updatedAt'] = now

        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError:
            raise ConflictError("Student with this number already exists")

        document['_id'] = result.inserted_id
        logger.info(f"Student {document.get('studentNo')} created with ID: {result.inserted_id}")
        return clean_document(document)

    @db_operation("update_student")
    def update(self, student_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply field updates and return the updated student, or None if missing."""
        oid = to_object_id(student_id)
        if oid is None:
            return None

        changes = dict(updates)
        changes['updatedAt'] = datetime.now()
        try:
            student = self.collection.find_one_and_update(
                {'_id': oid},
                {'$set': changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError("Student with this number already exists")
        return clean_document(student)

    @db_operation("list_students")
    def list_all(self) -> List[Dict[str, Any]]:
        """All students sorted by last name."""
        return [clean_document(doc) for doc in self.collection.find().sort('lastName', ASCENDING)]

    @db_operation("count_students_created")
    def count_created_between(self, start: datetime, end: datetime) -> int:
        return self.collection.count_documents({'createdAt': {'$gte': start, '$lt': end}})

    @db_operation("find_students_with_visits")
    def find_with_visits_between(self, start: datetime, end: datetime,
                                 limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Students whose embedded visit list holds a time-in inside [start, end)."""
        cursor = self.collection.find({
            'visits': {'$elemMatch': {'timeIn': {'$gte': start, '$lt': end}}}
        }).sort('visits.timeIn', DESCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [clean_document(doc) for doc in cursor]

    @db_operation("search_student_ids")
    def search_ids(self, text: str) -> List[str]:
        """Ids of students whose number or name contains ``text`` (case-insensitive)."""
        pattern = {'$regex': re.escape(text), '$options': 'i'}
        cursor = self.collection.find(
            {'$or': [
                {'studentNo': pattern},
                {'firstName': pattern},
                {'lastName': pattern},
                {'middleName': pattern},
            ]},
            {'_id': 1},
        )
        return [str(doc['_id']) for doc in cursor]

    @db_operation("find_students")
    def find_many(self, student_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Summary fields for several students keyed by id."""
        oids = [oid for oid in (to_object_id(sid) for sid in student_ids) if oid is not None]
        if not oids:
            return {}
        cursor = self.collection.find({'_id': {'$in': oids}}, STUDENT_SUMMARY_FIELDS)
        return {str(doc['_id']): clean_document(doc) for doc in cursor}

    @db_operation("push_embedded_visit")
    def push_embedded_visit(self, student_id: str, entry: Dict[str, Any]) -> bool:
        """Append a visit to the legacy embedded list."""
        result = self.collection.update_one(
            {'_id': to_object_id(student_id)},
            {'$push': {'visits': entry}, '$set': {'updatedAt': datetime.now()}},
        )
        return result.modified_count > 0

    @db_operation("close_embedded_visit")
    def close_embedded_visit(self, student_id: str, time_out: datetime) -> Optional[Dict[str, Any]]:
        """
        Stamp the latest open embedded visit as checked out.

        Returns:
            The closed embedded entry, or None when no embedded visit is open
        """
        oid = to_object_id(student_id)
        if oid is None:
            return None

        student = self.collection.find_one({'_id': oid}, {'visits': 1})
        visits = (student or {}).get('visits') or []
        for index in range(len(visits) - 1, -1, -1):
            visit = visits[index]
            if visit.get('timeIn') and not visit.get('timeOut'):
                self.collection.update_one(
                    {'_id': oid},
                    {'$set': {
                        f'visits.{index}.timeOut': time_out,
                        f'visits.{index}.status': 'OUT',
                        'updatedAt': datetime.now(),
                    }},
                )
                closed = dict(visit)
                closed['timeOut'] = time_out
                closed['status'] = 'OUT'
                return closed
        return None

    @db_operation("list_students_with_embedded_visits")
    def list_with_embedded_visits(self) -> List[Dict[str, Any]]:
        return [clean_document(doc) for doc in self.collection.find({'visits': {'$exists': True, '$ne': []}})]

    @db_operation("list_students_missing_initial")
    def list_missing_middle_initial(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find({
            'middleName': {'$exists': True, '$ne': ''},
            '$or': [
                {'middleInitial': {'$exists': False}},
                {'middleInitial': None},
                {'middleInitial': ''},
            ],
        })
        return [clean_document(doc) for doc in cursor]
