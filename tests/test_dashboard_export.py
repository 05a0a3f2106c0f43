import csv
import io
from datetime import datetime, timedelta

import pytest

from visitlog.exceptions.base import ValidationError
from visitlog.services.dashboard_service import DashboardService, average_stay_minutes
from visitlog.services.export_service import EXPORT_COLUMNS, ExportService, format_duration
from visitlog.utils.date_utils import parse_day

DAY = datetime(2025, 11, 28)


@pytest.fixture
def dashboard(students, visits, clock):
    return DashboardService(students, visits, clock=clock)


@pytest.fixture
def export(students, visits, clock):
    return ExportService(students, visits, clock=clock)


def test_average_stay():
    visits = [
        {'timeIn': DAY, 'timeOut': DAY + timedelta(minutes=30)},
        {'timeIn': DAY, 'timeOut': DAY + timedelta(minutes=45)},
        {'timeIn': DAY, 'timeOut': None},
    ]
    assert average_stay_minutes(visits) == 37.5
    assert average_stay_minutes([]) == 0


def test_monitor_stats_for_today(dashboard, students, visits):
    ana = students.add(studentNo='S25-01')
    ben = students.add(studentNo='S25-02', createdAt=datetime(2025, 1, 1))
    visits.add(ana['_id'], DAY.replace(hour=8), DAY.replace(hour=9), purpose='Study')
    visits.add(ana['_id'], DAY.replace(hour=9, minute=15), purpose='Study')
    visits.add(ben['_id'], DAY.replace(hour=8), DAY.replace(hour=8, minute=30), purpose='Printing')
    visits.add(ben['_id'], DAY - timedelta(days=3), DAY - timedelta(days=3, hours=-1), purpose='Thesis')

    stats = dashboard.monitor_stats()

    assert stats['occupancy'] == 1
    assert stats['totalVisitsToday'] == 3
    assert stats['newRegistrations'] == 1
    assert stats['topPurposes'][0] == {'name': 'Study', 'count': 2}
    assert {'name': 'Thesis', 'count': 1} not in stats['topPurposes']
    assert stats['avgStay'] == 45.0


def test_monitor_stats_on_a_quiet_day(dashboard):
    stats = dashboard.monitor_stats('2025-01-01')
    assert stats == {
        'occupancy': 0, 'totalVisitsToday': 0, 'newRegistrations': 0, 'topPurposes': [], 'avgStay': 0,
    }


def test_students_by_date_uses_embedded_visits(dashboard, students):
    students.add(studentNo='S25-01', visits=[{'timeIn': DAY.replace(hour=8)}])
    students.add(studentNo='S25-02', visits=[{'timeIn': DAY - timedelta(days=1)}])

    found = dashboard.students_by_date('2025-11-28')

    assert [s['studentNo'] for s in found] == ['S25-01']
    assert [s['studentNo'] for s in dashboard.timed_in_students()] == ['S25-01']


def test_parse_day():
    assert parse_day('2025-11-28').isoformat() == '2025-11-28'
    assert parse_day('2025-11-28T10:00:00Z').isoformat() == '2025-11-28'
    with pytest.raises(ValidationError, match="Invalid date format"):
        parse_day('yesterday')


def test_format_duration():
    assert format_duration(DAY, DAY + timedelta(minutes=42)) == '42m'
    assert format_duration(DAY, DAY + timedelta(minutes=65)) == '1h 5m'
    assert format_duration(DAY, DAY + timedelta(minutes=59, seconds=40)) == '1h 0m'
    assert format_duration(DAY, None) == ''
    assert format_duration(DAY, DAY) == ''


def test_attendance_csv(export, students, visits):
    ana = students.add(studentNo='S25-01', firstName='Ana', lastName='Cruz', course='BSIT', level='2')
    visits.add(ana['_id'], DAY.replace(hour=8), DAY.replace(hour=9, minute=5), purpose='Study, group')
    visits.add(ana['_id'], DAY.replace(hour=10))

    text = export.attendance_csv()

    assert text.splitlines()[0] == ','.join(f'"{column}"' for column in EXPORT_COLUMNS)
    rows = list(csv.DictReader(io.StringIO(text)))
    assert rows[0]['name'] == 'Ana Cruz'
    assert rows[0]['purpose'] == 'Study, group'
    assert rows[0]['timeIn'] == '2025-11-28T08:00:00'
    assert rows[0]['duration'] == '1h 5m'
    assert rows[0]['status'] == 'OUT'
    assert rows[1]['timeOut'] == ''
    assert rows[1]['duration'] == ''


def test_attendance_csv_for_one_day(export, students, visits):
    ana = students.add(studentNo='S25-01')
    visits.add(ana['_id'], DAY.replace(hour=8))
    visits.add(ana['_id'], DAY - timedelta(days=2))

    rows = list(csv.DictReader(io.StringIO(export.attendance_csv('2025-11-28'))))

    assert len(rows) == 1


def test_empty_export_has_header_only(export):
    assert export.attendance_csv().strip().splitlines() == [','.join(f'"{c}"' for c in EXPORT_COLUMNS)]
