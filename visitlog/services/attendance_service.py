"""
Attendance Service
Records check-ins and check-outs in the visit ledger and keeps the legacy
embedded visit list on each student roughly in sync.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from visitlog.config.settings import Config
from visitlog.exceptions.base import NoActiveSessionError, NotFoundError, ValidationError
from visitlog.services.activity_hub import ActivityHub
from visitlog.services.session_state import ScanAction
from visitlog.utils.pagination import page_envelope, parse_page_request

logger = logging.getLogger(__name__)


def duration_ms(session: Dict[str, Any]) -> Optional[int]:
    """Milliseconds between a visit's time-in and time-out."""
    time_in, time_out = session.get('timeIn'), session.get('timeOut')
    if not time_in or not time_out:
        return None
    return int((time_out - time_in).total_seconds() * 1000)


def visit_row(row: Dict[str, Any], student: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """A ledger visit shaped for listings, with its student attached."""
    return {
        '_id': row['_id'],
        'timeIn': row.get('timeIn'),
        'timeOut': row.get('timeOut'),
        'purpose': row.get('purpose'),
        'status': row.get('status'),
        'deviceId': row.get('deviceId'),
        'kiosk': row.get('kiosk'),
        'notes': row.get('notes'),
        'student': student,
    }


def _full_name(student: Dict[str, Any]) -> str:
    return f"{student.get('firstName', '')} {student.get('lastName', '')}".strip()


class AttendanceService:
    """Check-in / check-out recording and visit listings."""

    def __init__(self, student_repo, visit_repo, hub: ActivityHub = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.hub = hub
        self.clock = clock

    def _get_student(self, student_id: Optional[str]) -> Dict[str, Any]:
        if not student_id:
            raise ValidationError("studentId required")
        student = self.student_repo.find_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _publish(self, action: ScanAction, student: Dict[str, Any], session: Dict[str, Any]) -> None:
        if self.hub is None:
            return
        self.hub.publish({
            'type': action.value,
            'studentId': student['_id'],
            'studentNo': student.get('studentNo'),
            'name': _full_name(student),
            'photo': student.get('photo'),
            'purpose': session.get('purpose'),
            'timeIn': session.get('timeIn'),
            'timeOut': session.get('timeOut'),
            'at': self.clock(),
        })

    def time_in(self, student_id: str, purpose: Optional[str] = None, device_id: Optional[str] = None,
                kiosk: Optional[str] = None, notes: Optional[str] = None) -> Dict[str, Any]:
        """
        Open a visit for the student.

        Raises:
            ValidationError: studentId missing
            NotFoundError: Unknown student
            ConflictError: The student is already checked in
        """
        student = self._get_student(student_id)
        now = self.clock()

        visit = self.visit_repo.append_check_in(
            student['_id'], purpose=purpose, device_id=device_id,
            kiosk=kiosk, notes=notes, time_in=now,
        )

        # Legacy embedded copy is best-effort; the ledger is authoritative
        try:
            self.student_repo.push_embedded_visit(student['_id'], {
                'timeIn': now, 'purpose': purpose, 'status': 'IN', 'deviceId': device_id,
            })
        except Exception as e:
            logger.warning(f"Failed to update embedded visits for student {student['_id']} (non-fatal): {e}")

        self._publish(ScanAction.TIME_IN, student, visit)
        return {'message': 'Time In recorded', 'session': visit, 'studentId': student['_id']}

    def time_out(self, student_id: str) -> Dict[str, Any]:
        """
        Close the student's open visit.

        Falls back to the embedded visit list for students whose open visit
        predates the ledger.

        Raises:
            ValidationError: studentId missing
            NotFoundError: Unknown student
            NoActiveSessionError: Nothing to close
        """
        student = self._get_student(student_id)
        now = self.clock()

        session = self.visit_repo.close_active(student['_id'], time_out=now)
        if session:
            try:
                self.student_repo.close_embedded_visit(student['_id'], session['timeOut'])
            except Exception as e:
                logger.warning(f"Failed to update embedded visit on timeOut for {student['_id']} (non-fatal): {e}")
        else:
            session = self.student_repo.close_embedded_visit(student['_id'], now)
            if not session:
                raise NoActiveSessionError()
            logger.info(f"Closed legacy embedded visit for student {student['_id']}")

        self._publish(ScanAction.TIME_OUT, student, session)
        return {
            'message': 'Time Out recorded',
            'session': session,
            'durationMs': duration_ms(session),
            'studentId': student['_id'],
        }

    def recent_visits(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Paginated listing of visits across all students.

        Supported arguments: page, limit, sortBy (timeIn|timeOut), order
        (asc|desc), purpose, status, deviceId, kiosk and q. ``q`` matches
        student number and names; when no student matches it searches visit
        purpose and notes instead.
        """
        page_request = parse_page_request(args, Config.RECENT_VISITS_DEFAULT_LIMIT)
        query = (args.get('q') or '').strip()

        student_ids = None
        text = None
        if query:
            matched = self.student_repo.search_ids(query)
            if matched:
                student_ids = matched
            else:
                text = query

        rows, total = self.visit_repo.search(
            student_ids=student_ids,
            text=text,
            purpose=args.get('purpose'),
            status=args.get('status'),
            device_id=args.get('deviceId'),
            kiosk=args.get('kiosk'),
            sort_by=page_request.sort_by,
            descending=page_request.descending,
            skip=page_request.skip,
            limit=page_request.limit,
        )

        students = self.student_repo.find_many({row['studentId'] for row in rows})
        visits = [visit_row(row, students.get(row['studentId'])) for row in rows]
        return page_envelope(visits, page_request, total)
