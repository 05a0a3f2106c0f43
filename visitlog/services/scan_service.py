"""
Scan Service
Turns a raw kiosk scan into a student and the next check-in/check-out action.
"""
import logging
from typing import Any, Dict, Optional

from visitlog.config.settings import Config
from visitlog.services.qr_payload import recover_payload
from visitlog.services.session_state import derive_next_action
from visitlog.services.student_matching import StudentResolver
from visitlog.utils.string_utils import truncate_string

logger = logging.getLogger(__name__)


class ScanService:
    """Resolves QR scans against the student directory and visit ledger."""

    def __init__(self, student_repo, visit_repo, resolver: StudentResolver = None,
                 history_limit: int = None):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.resolver = resolver or StudentResolver(student_repo)
        self.history_limit = history_limit or Config.HISTORY_DEFAULT_LIMIT

    def visit_history(self, student: Dict[str, Any]) -> list:
        """
        Recent visits for the session decision, oldest first.

        Students enrolled before the visit ledger existed only have the
        embedded list, which is used when the ledger holds nothing.
        """
        history = self.visit_repo.list_for_student(student['_id'], limit=self.history_limit)
        if history:
            return history
        return list(student.get('visits') or [])

    def scan(self, qr: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Process one scan.

        Args:
            qr: Text emitted by the scanner

        Returns:
            Dict with student, allowed, action and activeSession, or None
            when no student matches the scan
        """
        logger.info(f"Scan received: {truncate_string(str(qr or ''), 120)!r}")
        payload = recover_payload(qr)
        logger.info(f"Recovered scan payload: {payload}")

        student = self.resolver.resolve(payload)
        if not student:
            return None

        decision = derive_next_action(self.visit_history(student))
        logger.info(f"Student {student.get('studentNo')} scanned, next action {decision.action.value}")

        return {
            "student": student,
            "allowed": True,
            "action": decision.action.value,
            "activeSession": decision.active_session,
        }
