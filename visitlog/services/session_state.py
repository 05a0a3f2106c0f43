"""
Check-in / check-out decision for a scanned student.
"""
from enum import Enum
from typing import Any, Dict, Iterable, NamedTuple, Optional


class ScanAction(str, Enum):
    """What the kiosk should do next for the scanned student."""
    TIME_IN = "TIME_IN"
    TIME_OUT = "TIME_OUT"


class SessionDecision(NamedTuple):
    action: ScanAction
    active_session: Optional[Dict[str, Any]]


def is_open(visit: Dict[str, Any]) -> bool:
    """A visit is open while it has a time-in and no time-out."""
    return bool(visit.get('timeIn')) and not visit.get('timeOut')


def find_active_session(visits: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return the most recent open visit from a history ordered oldest first."""
    for visit in reversed(list(visits or [])):
        if is_open(visit):
            return visit
    return None


def derive_next_action(visits: Iterable[Dict[str, Any]]) -> SessionDecision:
    """
    Decide whether the next scan checks the student in or out.

    Args:
        visits: Visit history ordered by time, oldest first

    Returns:
        TIME_OUT with the open visit when one exists, otherwise TIME_IN
    """
    active = find_active_session(visits)
    if active is not None:
        return SessionDecision(ScanAction.TIME_OUT, active)
    return SessionDecision(ScanAction.TIME_IN, None)
