from datetime import datetime

from visitlog.services.scan_service import ScanService


def test_scan_free_text_finds_student_with_open_visit(students, visits):
    student = students.add(studentNo='S25-02')
    visits.add(student['_id'], datetime(2025, 11, 27, 8, 0), datetime(2025, 11, 27, 9, 0))
    open_visit = visits.add(student['_id'], datetime(2025, 11, 28, 8, 0))

    result = ScanService(students, visits).scan('studentNo: SS2255--0022 status done')

    assert result['student']['_id'] == student['_id']
    assert result['allowed'] is True
    assert result['action'] == 'TIME_OUT'
    assert result['activeSession']['_id'] == open_visit['_id']


def test_scan_json_payload_without_open_visit_offers_time_in(students, visits):
    student = students.add(studentNo='S25-281101')
    qr = '{"id": "%s", "studentNo": "S25-281101"}' % student['_id']

    result = ScanService(students, visits).scan(qr)

    assert result['action'] == 'TIME_IN'
    assert result['activeSession'] is None


def test_scan_unknown_student_returns_none(students, visits):
    students.add(studentNo='S25-01')
    assert ScanService(students, visits).scan('nothing useful here') is None


def test_scan_empty_input_returns_none(students, visits):
    assert ScanService(students, visits).scan('') is None
    assert ScanService(students, visits).scan(None) is None


def test_scan_falls_back_to_embedded_visits(students, visits):
    embedded_open = {'timeIn': datetime(2025, 11, 28, 7, 0), 'timeOut': None}
    students.add(studentNo='S25-04', visits=[embedded_open])

    result = ScanService(students, visits).scan('{"studentNo":"S25-04"}')

    assert result['action'] == 'TIME_OUT'
    assert result['activeSession'] == embedded_open


def test_ledger_history_takes_precedence_over_embedded(students, visits):
    student = students.add(studentNo='S25-05', visits=[{'timeIn': datetime(2025, 11, 1, 7, 0)}])
    visits.add(student['_id'], datetime(2025, 11, 28, 8, 0), datetime(2025, 11, 28, 9, 0))

    result = ScanService(students, visits).scan('S25-05')

    assert result['action'] == 'TIME_IN'
