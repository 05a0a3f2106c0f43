"""
One-off data maintenance jobs run from the command line scripts.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from visitlog.exceptions.base import ConflictError
from visitlog.utils.string_utils import derive_middle_initial

logger = logging.getLogger(__name__)


def plan_legacy_visits(entries: Iterable[Dict[str, Any]],
                       active: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    Legacy embedded visits with a time-in, oldest first, ready for the ledger.

    The embedded list never refused a second check-in, so it can hold several
    open visits. An open visit followed by a later time-in (another legacy
    entry or the student's open ledger visit) is closed at that time-in, which
    leaves at most one open visit per student.

    Args:
        entries: The student's embedded visits
        active: The student's open ledger visit, if any

    Returns:
        Copies of the entries with timeOut and status made consistent
    """
    timed = sorted((dict(entry) for entry in entries if entry.get('timeIn')), key=lambda e: e['timeIn'])
    next_starts = [entry['timeIn'] for entry in timed[1:]]
    next_starts.append(active.get('timeIn') if active else None)

    for entry, next_start in zip(timed, next_starts):
        if not entry.get('timeOut') and next_start and next_start > entry['timeIn']:
            logger.warning(f"Legacy visit at {entry['timeIn']} was never closed; closing it at {next_start}")
            entry['timeOut'] = next_start
        entry['status'] = 'OUT' if entry.get('timeOut') else 'IN'
    return timed


def migrate_embedded_visits(student_repo, visit_repo) -> int:
    """
    Copy every embedded visit into the visit ledger.

    Visits already present for the same student and time-in are skipped, so
    the job can be re-run safely. Ledger visits left with a time-out but an
    IN status by earlier runs are repaired first.

    Returns:
        Number of ledger documents created
    """
    repaired = visit_repo.repair_open_status()
    if repaired:
        logger.warning(f"Repaired status of {repaired} closed visits still marked IN")

    students = student_repo.list_with_embedded_visits()
    logger.info(f"Found {len(students)} students with embedded visits")

    created = 0
    for student in students:
        active = visit_repo.find_active(student['_id'])
        for entry in plan_legacy_visits(student.get('visits') or [], active):
            if visit_repo.exists_for(student['_id'], entry['timeIn']):
                continue
            try:
                visit_repo.insert_migrated(student['_id'], entry)
            except ConflictError:
                logger.warning(f"Skipped open legacy visit at {entry['timeIn']} for student {student['_id']}: "
                               f"a newer visit is already open")
                continue
            created += 1

    logger.info(f"Migration complete. Created {created} visit documents")
    return created


def backfill_middle_initials(student_repo) -> int:
    """Set middleInitial on students that have a middle name but no initial."""
    count = 0
    for student in student_repo.list_missing_middle_initial():
        initial = derive_middle_initial(student.get('middleName'))
        if not initial:
            continue
        try:
            student_repo.update(student['_id'], {'middleInitial': initial})
        except Exception as e:
            logger.error(f"Error updating student {student['_id']}: {e}")
            continue
        logger.info(f"Updated {student.get('studentNo')} -> middleInitial={initial!r}")
        count += 1

    logger.info(f"Backfilled middleInitial for {count} students")
    return count
