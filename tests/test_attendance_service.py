from datetime import datetime, timedelta

import pytest

from visitlog.exceptions.base import ConflictError, NoActiveSessionError, NotFoundError, ValidationError
from visitlog.services.activity_hub import ActivityHub
from visitlog.services.attendance_service import AttendanceService, duration_ms


@pytest.fixture
def hub():
    return ActivityHub(queue_size=10)


@pytest.fixture
def service(students, visits, hub, clock):
    return AttendanceService(students, visits, hub=hub, clock=clock)


def test_time_in_opens_visit_and_mirrors_it(service, students, visits, clock):
    student = students.add(studentNo='S25-01')

    result = service.time_in(student['_id'], purpose='Study', device_id='kiosk-1')

    assert result['message'] == 'Time In recorded'
    assert result['studentId'] == student['_id']
    assert result['session']['timeIn'] == clock.now
    assert visits.find_active(student['_id'])['purpose'] == 'Study'
    assert students.docs[student['_id']]['visits'][-1]['status'] == 'IN'


def test_time_in_publishes_activity(service, students, hub):
    student = students.add(studentNo='S25-01', firstName='Ana', lastName='Cruz')
    subscription = hub.subscribe()

    service.time_in(student['_id'], purpose='Research')

    event = subscription.next_event(timeout=0.1)
    assert event['type'] == 'TIME_IN'
    assert event['name'] == 'Ana Cruz'
    assert event['purpose'] == 'Research'


def test_double_time_in_is_rejected(service, students):
    student = students.add(studentNo='S25-01')
    service.time_in(student['_id'])

    with pytest.raises(ConflictError):
        service.time_in(student['_id'])


def test_time_in_requires_student(service):
    with pytest.raises(ValidationError, match="studentId required"):
        service.time_in(None)
    with pytest.raises(NotFoundError, match="Student not found"):
        service.time_in('6560f1a2b3c4d5e6f7a8b9c0')


def test_time_in_survives_mirror_failure(service, students, visits, monkeypatch):
    student = students.add(studentNo='S25-01')

    def broken(*args, **kwargs):
        raise RuntimeError("mirror down")

    monkeypatch.setattr(students, 'push_embedded_visit', broken)

    result = service.time_in(student['_id'])

    assert result['session']['status'] == 'IN'
    assert visits.find_active(student['_id']) is not None


def test_time_out_closes_visit_with_duration(service, students, visits, clock):
    student = students.add(studentNo='S25-01')
    service.time_in(student['_id'])
    clock.now = clock.now + timedelta(minutes=45)

    result = service.time_out(student['_id'])

    assert result['message'] == 'Time Out recorded'
    assert result['durationMs'] == 45 * 60 * 1000
    assert result['session']['status'] == 'OUT'
    assert visits.find_active(student['_id']) is None
    assert students.docs[student['_id']]['visits'][-1]['timeOut'] == clock.now


def test_time_out_without_open_visit(service, students):
    student = students.add(studentNo='S25-01')

    with pytest.raises(NoActiveSessionError, match="No active session found"):
        service.time_out(student['_id'])


def test_time_out_falls_back_to_embedded_visit(service, students, clock):
    legacy_in = clock.now - timedelta(hours=1)
    student = students.add(studentNo='S25-01', visits=[{'timeIn': legacy_in, 'status': 'IN'}])

    result = service.time_out(student['_id'])

    assert result['session']['timeIn'] == legacy_in
    assert result['durationMs'] == 60 * 60 * 1000


def test_duration_ms_of_open_visit_is_none():
    assert duration_ms({'timeIn': datetime(2025, 1, 1)}) is None


def test_recent_visits_filters_and_paginates(service, students, visits, clock):
    ana = students.add(studentNo='S25-01', firstName='Ana')
    ben = students.add(studentNo='S25-02', firstName='Ben')
    for hour in range(3):
        visits.add(ana['_id'], clock.now.replace(hour=8 + hour), purpose='Study')
    visits.add(ben['_id'], clock.now.replace(hour=12), purpose='Printing')

    page = service.recent_visits({'limit': '2', 'page': '1'})
    assert page['total'] == 4
    assert page['totalPages'] == 2
    assert page['hasMore'] is True
    assert page['visits'][0]['student']['firstName'] == 'Ben'

    by_name = service.recent_visits({'q': 'ana'})
    assert by_name['total'] == 3

    by_purpose_text = service.recent_visits({'q': 'print'})
    assert by_purpose_text['total'] == 1
    assert by_purpose_text['visits'][0]['purpose'] == 'Printing'


def test_recent_visits_caps_limit(service):
    page = service.recent_visits({'limit': '100000'})
    assert page['limit'] == 200
