"""
Visit ledger backed by the MongoDB ``visits`` collection.

Each document is one presence interval of a student. A visit is open while
``timeOut`` is absent, and its ``status`` is IN exactly then; a partial unique
index on IN visits keeps at most one open visit per student.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from visitlog.exceptions.base import ConflictError
from visitlog.repositories.mongo_repository import MongoRepository, clean_document, db_operation, to_object_id

logger = logging.getLogger(__name__)

STATUS_IN = 'IN'
STATUS_OUT = 'OUT'

# Matches both a missing and a null timeOut
OPEN_VISIT = {'timeOut': None}


def _contains(text: str) -> Dict[str, str]:
    return {'$regex': re.escape(text), '$options': 'i'}


class VisitRepository(MongoRepository):
    """Repository for visit (check-in / check-out) records."""

    collection_name = "visits"

    def ensure_indexes(self) -> None:
        self.collection.create_index([('studentId', ASCENDING), ('timeIn', DESCENDING)], name='student_timeIn')
        self.collection.create_index([('timeIn', DESCENDING)], name='timeIn')
        self.collection.create_index([('timeOut', DESCENDING)], name='timeOut')
        self.collection.create_index(
            [('studentId', ASCENDING)],
            unique=True,
            partialFilterExpression={'status': STATUS_IN},
            name='one_open_visit_per_student',
        )

    @db_operation("append_check_in")
    def append_check_in(self, student_id: str, purpose: Optional[str] = None,
                        device_id: Optional[str] = None, kiosk: Optional[str] = None,
                        notes: Optional[str] = None, time_in: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Open a new visit for a student.

        Raises:
            ConflictError: The student already has an open visit
        """
        oid = to_object_id(student_id)
        if self.collection.find_one({'studentId': oid, **OPEN_VISIT}, {'_id': 1}):
            raise ConflictError("Student already has an active session")

        now = datetime.now()
        visit = {
            'studentId': oid,
            'timeIn': time_in or now,
            'purpose': purpose,
            'status': STATUS_IN,
            'deviceId': device_id,
            'kiosk': kiosk,
            'notes': notes,
            'createdAt': now,
            'updatedAt': now,
        }
        try:
            result = self.collection.insert_one(visit)
        except DuplicateKeyError:
            raise ConflictError("Student already has an active session")

        visit['_id'] = result.inserted_id
        logger.info(f"Visit {result.inserted_id} opened for student {student_id}")
        return clean_document(visit)

    @db_operation("find_active_visit")
    def find_active(self, student_id: str) -> Optional[Dict[str, Any]]:
        """The student's most recent open visit, if any."""
        oid = to_object_id(student_id)
        if oid is None:
            return None
        visit = self.collection.find_one(
            {'studentId': oid, 'timeIn': {'$ne': None}, **OPEN_VISIT},
            sort=[('timeIn', DESCENDING)],
        )
        return clean_document(visit)

    @db_operation("close_active_visit")
    def close_active(self, student_id: str, time_out: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Stamp the open visit's time-out; returns the closed visit or None."""
        oid = to_object_id(student_id)
        if oid is None:
            return None

        stamp = time_out or datetime.now()
        visit = self.collection.find_one_and_update(
            {'studentId': oid, 'timeIn': {'$ne': None}, **OPEN_VISIT},
            {'$set': {'timeOut': stamp, 'status': STATUS_OUT, 'updatedAt': datetime.now()}},
            sort=[('timeIn', DESCENDING)],
            return_document=ReturnDocument.AFTER,
        )
        if visit:
            logger.info(f"Visit {visit['_id']} closed for student {student_id}")
        return clean_document(visit)

    @db_operation("list_student_visits")
    def list_for_student(self, student_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """The student's latest visits, returned oldest first."""
        oid = to_object_id(student_id)
        if oid is None:
            return []
        cursor = self.collection.find({'studentId': oid}).sort('timeIn', DESCENDING).limit(limit)
        visits = [clean_document(doc) for doc in cursor]
        visits.reverse()
        return visits

    @db_operation("search_visits")
    def search(self, *, student_ids: Optional[List[str]] = None, text: Optional[str] = None,
               purpose: Optional[str] = None, status: Optional[str] = None,
               device_id: Optional[str] = None, kiosk: Optional[str] = None,
               sort_by: str = 'timeIn', descending: bool = True,
               skip: int = 0, limit: int = 10) -> Tuple[List[Dict[str, Any]], int]:
        """
        Paginated visit listing.

        Args:
            student_ids: Restrict to these students
            text: Case-insensitive match on purpose or notes
            purpose: Case-insensitive match on purpose
            status: Exact status (IN / OUT)
            device_id: Exact device id
            kiosk: Case-insensitive match on kiosk name
            sort_by: timeIn or timeOut
            descending: Sort direction
            skip: Rows to skip
            limit: Page size

        Returns:
            Tuple of (page rows, total matching rows)
        """
        query: Dict[str, Any] = {}
        if student_ids is not None:
            query['studentId'] = {'$in': [oid for oid in map(to_object_id, student_ids) if oid is not None]}
        if text:
            query['$or'] = [{'purpose': _contains(text)}, {'notes': _contains(text)}]
        if purpose:
            query['purpose'] = _contains(purpose)
        if status:
            query['status'] = status
        if device_id:
            query['deviceId'] = device_id
        if kiosk:
            query['kiosk'] = _contains(kiosk)

        sort_field = 'timeOut' if sort_by == 'timeOut' else 'timeIn'
        direction = DESCENDING if descending else ASCENDING

        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort(sort_field, direction).skip(skip).limit(limit)
        return [clean_document(doc) for doc in cursor], total

    @db_operation("count_open_visits")
    def count_open(self) -> int:
        return self.collection.count_documents({'timeIn': {'$ne': None}, **OPEN_VISIT})

    @db_operation("count_visits_in_range")
    def count_touching(self, start: datetime, end: datetime) -> int:
        """Visits with a time-in or a time-out inside [start, end), each counted once."""
        return self.collection.count_documents({'$or': [
            {'timeIn': {'$gte': start, '$lt': end}},
            {'timeOut': {'$gte': start, '$lt': end}},
        ]})

    @db_operation("top_purposes")
    def top_purposes(self, start: datetime, end: datetime, limit: int = 6) -> List[Dict[str, Any]]:
        """Most frequent visit purposes for time-ins inside [start, end)."""
        pipeline = [
            {'$match': {'timeIn': {'$gte': start, '$lt': end}, 'purpose': {'$nin': [None, '']}}},
            {'$group': {'_id': '$purpose', 'count': {'$sum': 1}}},
            {'$sort': {'count': -1}},
            {'$limit': limit},
        ]
        return [{'name': row['_id'], 'count': row['count']} for row in self.collection.aggregate(pipeline)]

    @db_operation("completed_visits")
    def completed_between(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        """Closed visits whose time-in falls inside [start, end)."""
        cursor = self.collection.find(
            {'timeIn': {'$gte': start, '$lt': end}, 'timeOut': {'$ne': None}},
            {'timeIn': 1, 'timeOut': 1},
        )
        return [clean_document(doc) for doc in cursor]

    @db_operation("list_visits_for_export")
    def list_between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """All visits (optionally with a time-in inside [start, end)) oldest first."""
        query = {}
        if start is not None and end is not None:
            query['timeIn'] = {'$gte': start, '$lt': end}
        return [clean_document(doc) for doc in self.collection.find(query).sort('timeIn', ASCENDING)]

    @db_operation("visit_exists")
    def exists_for(self, student_id: str, time_in: datetime) -> bool:
        return self.collection.count_documents(
            {'studentId': to_object_id(student_id), 'timeIn': time_in}, limit=1) > 0

    @db_operation("insert_migrated_visit")
    def insert_migrated(self, student_id: str, entry: Dict[str, Any]) -> str:
        """Copy a legacy embedded visit into the ledger."""
        now = datetime.now()
        document = {
            'studentId': to_object_id(student_id),
            'timeIn': entry.get('timeIn'),
            'purpose': entry.get('purpose'),
            # Legacy status values are unreliable; the ledger derives it from timeOut
            'status': STATUS_OUT if entry.get('timeOut') else STATUS_IN,
            'deviceId': entry.get('deviceId'),
            'createdAt': now,
            'updatedAt': now,
        }
        if entry.get('timeOut'):
            document['timeOut'] = entry['timeOut']
        try:
            result = self.collection.insert_one(document)
        except DuplicateKeyError:
            raise ConflictError("Student already has an active session")
        return str(result.inserted_id)

    @db_operation("repair_visit_status")
    def repair_open_status(self) -> int:
        """Mark visits that have a time-out but still say IN as OUT; returns the count fixed."""
        result = self.collection.update_many(
            {'status': STATUS_IN, 'timeOut': {'$ne': None}},
            {'$set': {'status': STATUS_OUT, 'updatedAt': datetime.now()}},
        )
        return result.modified_count
