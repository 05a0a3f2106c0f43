import re
from datetime import datetime
from typing import Optional

import pytest
from bson import ObjectId
from werkzeug.security import generate_password_hash

from visitlog.exceptions.base import ConflictError
from visitlog.services.activity_hub import ActivityHub
from visitlog.services.container import ServiceContainer
from visitlog.services.token_revocation import InMemoryTokenRevocationStore

FIXED_NOW = datetime(2025, 11, 28, 9, 30, 0)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _valid(oid: str) -> bool:
    return isinstance(oid, str) and ObjectId.is_valid(oid)


class InMemoryStudents:
    def __init__(self, clock: FakeClock = None):
        self.clock = clock or FakeClock()
        self.docs = {}
        self.lookups = []

    def add(self, **fields):
        doc = {
            'firstName': 'Test', 'lastName': 'Student', 'course': 'BSIT', 'level': '1',
            'visits': [], 'createdAt': self.clock(),
        }
        doc.update(fields)
        doc['_id'] = str(ObjectId())
        self.docs[doc['_id']] = doc
        return dict(doc)

    def find_by_id(self, student_id):
        if not _valid(student_id):
            return None
        doc = self.docs.get(student_id)
        return dict(doc) if doc else None

    def find_by_student_no(self, value, fuzzy=False):
        self.lookups.append((value, fuzzy))
        for doc in self.docs.values():
            number = doc.get('studentNo') or ''
            if (fuzzy and re.search(value, number, re.IGNORECASE)) or (not fuzzy and number == value):
                return dict(doc)
        return None

    def exists(self, student_no):
        return any(doc.get('studentNo') == student_no for doc in self.docs.values())

    def create(self, data):
        if self.exists(data.get('studentNo')):
            raise ConflictError("Student with this number already exists")
        doc = dict(data)
        doc.setdefault('visits', [])
        doc['createdAt'] = self.clock()
        doc['updatedAt'] = self.clock()
        doc['_id'] = str(ObjectId())
        self.docs[doc['_id']] = doc
        return dict(doc)

    def update(self, student_id, updates):
        if not _valid(student_id) or student_id not in self.docs:
            return None
        self.docs[student_id].update(updates)
        return dict(self.docs[student_id])

    def list_all(self):
        return sorted((dict(d) for d in self.docs.values()), key=lambda d: d.get('lastName', ''))

    def count_created_between(self, start, end):
        return sum(1 for d in self.docs.values() if start <= d['createdAt'] < end)

    def find_with_visits_between(self, start, end, limit=None):
        rows = [dict(d) for d in self.docs.values()
                if any(v.get('timeIn') and start <= v['timeIn'] < end for v in d.get('visits', []))]
        return rows[:limit] if limit else rows

    def search_ids(self, text):
        needle = text.lower()
        return [d['_id'] for d in self.docs.values()
                if any(needle in (d.get(f) or '').lower()
                       for f in ('studentNo', 'firstName', 'lastName', 'middleName'))]

    def find_many(self, student_ids):
        return {sid: dict(self.docs[sid]) for sid in student_ids if sid in self.docs}

    def push_embedded_visit(self, student_id, entry):
        self.docs[student_id].setdefault('visits', []).append(dict(entry))
        return True

    def close_embedded_visit(self, student_id, time_out):
        visits = self.docs.get(student_id, {}).get('visits', [])
        for visit in reversed(visits):
            if visit.get('timeIn') and not visit.get('timeOut'):
                visit['timeOut'] = time_out
                visit['status'] = 'OUT'
                return dict(visit)
        return None

    def list_with_embedded_visits(self):
        return [dict(d) for d in self.docs.values() if d.get('visits')]

    def list_missing_middle_initial(self):
        return [dict(d) for d in self.docs.values() if d.get('middleName') and not d.get('middleInitial')]

    def ping(self):
        return True


class InMemoryVisits:
    def __init__(self, clock: FakeClock = None):
        self.clock = clock or FakeClock()
        self.docs = []

    def add(self, student_id, time_in, time_out=None, purpose=None, notes=None, status=None):
        doc = {
            '_id': str(ObjectId()), 'studentId': student_id, 'timeIn': time_in,
            'timeOut': time_out, 'purpose': purpose, 'notes': notes,
            'status': status or ('OUT' if time_out else 'IN'), 'deviceId': None, 'kiosk': None,
        }
        self.docs.append(doc)
        return dict(doc)

    def _open(self, student_id):
        rows = [d for d in self.docs if d['studentId'] == student_id and d['timeIn'] and not d.get('timeOut')]
        return max(rows, key=lambda d: d['timeIn']) if rows else None

    def _has_in_status(self, student_id):
        # Mirrors the partial unique index on status == IN
        return any(d['studentId'] == student_id and d.get('status') == 'IN' for d in self.docs)

    def append_check_in(self, student_id, purpose=None, device_id=None, kiosk=None, notes=None, time_in=None):
        if self._open(student_id) or self._has_in_status(student_id):
            raise ConflictError("Student already has an active session")
        doc = {
            '_id': str(ObjectId()), 'studentId': student_id, 'timeIn': time_in or self.clock(),
            'purpose': purpose, 'status': 'IN', 'deviceId': device_id, 'kiosk': kiosk, 'notes': notes,
        }
        self.docs.append(doc)
        return dict(doc)

    def find_active(self, student_id):
        doc = self._open(student_id)
        return dict(doc) if doc else None

    def close_active(self, student_id, time_out=None):
        doc = self._open(student_id)
        if not doc:
            return None
        doc['timeOut'] = time_out or self.clock()
        doc['status'] = 'OUT'
        return dict(doc)

    def list_for_student(self, student_id, limit=20):
        rows = sorted((d for d in self.docs if d['studentId'] == student_id), key=lambda d: d['timeIn'])
        return [dict(d) for d in rows[-limit:]]

    def search(self, *, student_ids=None, text=None, purpose=None, status=None, device_id=None,
               kiosk=None, sort_by='timeIn', descending=True, skip=0, limit=10):
        rows = list(self.docs)
        if student_ids is not None:
            rows = [d for d in rows if d['studentId'] in student_ids]
        if text:
            rows = [d for d in rows if any(text.lower() in (d.get(f) or '').lower() for f in ('purpose', 'notes'))]
        if purpose:
            rows = [d for d in rows if purpose.lower() in (d.get('purpose') or '').lower()]
        if status:
            rows = [d for d in rows if d.get('status') == status]
        if device_id:
            rows = [d for d in rows if d.get('deviceId') == device_id]
        if kiosk:
            rows = [d for d in rows if kiosk.lower() in (d.get('kiosk') or '').lower()]
        rows.sort(key=lambda d: d.get(sort_by) or datetime.min, reverse=descending)
        return [dict(d) for d in rows[skip:skip + limit]], len(rows)

    def count_open(self):
        return sum(1 for d in self.docs if d['timeIn'] and not d.get('timeOut'))

    def count_touching(self, start, end):
        def inside(value: Optional[datetime]) -> bool:
            return value is not None and start <= value < end
        return sum(1 for d in self.docs if inside(d.get('timeIn')) or inside(d.get('timeOut')))

    def top_purposes(self, start, end, limit=6):
        counts = {}
        for d in self.docs:
            if d.get('purpose') and start <= d['timeIn'] < end:
                counts[d['purpose']] = counts.get(d['purpose'], 0) + 1
        ranked = sorted(counts.items(), key=lambda item: -item[1])[:limit]
        return [{'name': name, 'count': count} for name, count in ranked]

    def completed_between(self, start, end):
        return [dict(d) for d in self.docs if start <= d['timeIn'] < end and d.get('timeOut')]

    def list_between(self, start=None, end=None):
        rows = self.docs
        if start is not None and end is not None:
            rows = [d for d in rows if start <= d['timeIn'] < end]
        return [dict(d) for d in sorted(rows, key=lambda d: d['timeIn'])]

    def exists_for(self, student_id, time_in):
        return any(d['studentId'] == student_id and d['timeIn'] == time_in for d in self.docs)

    def insert_migrated(self, student_id, entry):
        if not entry.get('timeOut') and self._has_in_status(student_id):
            raise ConflictError("Student already has an active session")
        doc = self.add(student_id, entry['timeIn'], entry.get('timeOut'), entry.get('purpose'))
        return doc['_id']

    def repair_open_status(self):
        stale = [d for d in self.docs if d.get('status') == 'IN' and d.get('timeOut')]
        for doc in stale:
            doc['status'] = 'OUT'
        return len(stale)


class InMemoryAdmins:
    def __init__(self):
        self.docs = {}

    def add(self, username, email, password):
        admin_id = str(ObjectId())
        self.docs[admin_id] = {
            '_id': admin_id, 'username': username, 'email': email,
            'password': generate_password_hash(password),
        }
        return dict(self.docs[admin_id])

    def find_for_login(self, username, email):
        identifiers = {value for value in (username, email) if value}
        for doc in self.docs.values():
            if doc['username'] in identifiers or doc['email'] in identifiers:
                return dict(doc)
        return None

    def find_by_id(self, admin_id):
        doc = self.docs.get(admin_id)
        return dict(doc) if doc else None

    def update(self, admin_id, changes):
        if admin_id not in self.docs:
            return None
        self.docs[admin_id].update(changes)
        return dict(self.docs[admin_id])


class FakeStorage:
    def __init__(self):
        self.objects = {}

    def upload_bytes(self, object_name, data, content_type):
        self.objects[object_name] = (data, content_type)
        return f"https://bucket.example/{object_name}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def students(clock):
    return InMemoryStudents(clock)


@pytest.fixture
def visits(clock):
    return InMemoryVisits(clock)


@pytest.fixture
def admins():
    return InMemoryAdmins()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def services(students, visits, admins, storage, clock):
    container = ServiceContainer(
        student_repo=students,
        visit_repo=visits,
        admin_repo=admins,
        revocation_store=InMemoryTokenRevocationStore(),
        storage=storage,
        hub=ActivityHub(queue_size=10),
    )
    container.auth.secret = 'test-secret'
    for service in (container.attendance, container.students, container.dashboard, container.export):
        service.clock = clock
    return container


@pytest.fixture
def client(services):
    from visitlog.app import create_app

    app = create_app(services)
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def admin_token(services, admins):
    admin = admins.add('admin', 'admin@example.edu', 'password123')
    return services.auth.issue_token(admin)
