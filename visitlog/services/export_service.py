"""
Export Service
Attendance CSV export built from the visit ledger.
"""
import csv
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import pandas as pd

from visitlog.utils.date_utils import day_bounds, parse_day

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ['studentNo', 'name', 'course', 'level', 'purpose', 'timeIn', 'timeOut', 'duration', 'status']


def format_duration(time_in: Optional[datetime], time_out: Optional[datetime]) -> str:
    """Visit length as '1h 5m' or '42m'; blank when open or inconsistent."""
    if not time_in or not time_out or time_out <= time_in:
        return ''
    total_minutes = round((time_out - time_in).total_seconds() / 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _timestamp(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ''


class ExportService:

    def __init__(self, student_repo, visit_repo, clock: Callable[[], datetime] = datetime.now):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.clock = clock

    def _row(self, visit: Dict[str, Any], student: Dict[str, Any]) -> Dict[str, str]:
        name = f"{student.get('firstName', '')} {student.get('lastName', '')}".strip()
        return {
            'studentNo': student.get('studentNo') or '',
            'name': name,
            'course': student.get('course') or '',
            'level': student.get('level') or '',
            'purpose': visit.get('purpose') or '',
            'timeIn': _timestamp(visit.get('timeIn')),
            'timeOut': _timestamp(visit.get('timeOut')),
            'duration': format_duration(visit.get('timeIn'), visit.get('timeOut')),
            'status': visit.get('status') or '',
        }

    def attendance_csv(self, date: Optional[str] = None) -> str:
        """
        Render visits as CSV, every field quoted.

        Args:
            date: Optional YYYY-MM-DD; restricts to visits with a time-in that
                  day, otherwise every visit is exported
        """
        start = end = None
        if date:
            start, end = day_bounds(parse_day(date, self.clock))

        visits = self.visit_repo.list_between(start, end)
        students = self.student_repo.find_many({visit['studentId'] for visit in visits})

        rows = [self._row(visit, students.get(visit['studentId'], {})) for visit in visits]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        logger.info(f"Exporting {len(df)} visits{f' for {date}' if date else ''}")
        return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')
