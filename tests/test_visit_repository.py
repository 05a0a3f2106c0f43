from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from visitlog.exceptions.base import ConflictError
from visitlog.repositories.visit_repository import VisitRepository


class InsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class RecordingCollection:
    def __init__(self, duplicate=False):
        self.duplicate = duplicate
        self.inserted = []

    def insert_one(self, document):
        if self.duplicate:
            raise DuplicateKeyError("E11000 duplicate key error")
        self.inserted.append(document)
        return InsertResult(ObjectId())


def _repo(collection):
    return VisitRepository(db={'visits': collection})


def test_migrated_status_follows_time_out():
    collection = RecordingCollection()
    repo = _repo(collection)
    student_id = str(ObjectId())

    repo.insert_migrated(student_id, {
        'timeIn': datetime(2025, 11, 1, 8), 'timeOut': datetime(2025, 11, 1, 9), 'status': 'IN',
    })
    repo.insert_migrated(student_id, {'timeIn': datetime(2025, 11, 2, 8), 'status': 'OUT'})

    closed, still_open = collection.inserted
    assert closed['status'] == 'OUT'
    assert still_open['status'] == 'IN'
    assert 'timeOut' not in still_open


def test_second_open_migrated_visit_is_a_conflict():
    repo = _repo(RecordingCollection(duplicate=True))

    with pytest.raises(ConflictError):
        repo.insert_migrated(str(ObjectId()), {'timeIn': datetime(2025, 11, 2, 8)})
