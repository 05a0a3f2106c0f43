"""
Dashboard Service
Daily occupancy and visit statistics for the monitor screen.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from visitlog.config.settings import Config
from visitlog.utils.date_utils import day_bounds, parse_day

logger = logging.getLogger(__name__)


def average_stay_minutes(visits: List[Dict[str, Any]]) -> float:
    """Mean time-in to time-out span in minutes, rounded to one decimal; 0 without data."""
    spans = [
        (visit['timeOut'] - visit['timeIn']).total_seconds()
        for visit in visits
        if visit.get('timeIn') and visit.get('timeOut')
    ]
    if not spans:
        return 0
    return round(sum(spans) / len(spans) / 60, 1)


class DashboardService:

    def __init__(self, student_repo, visit_repo, clock: Callable[[], datetime] = datetime.now):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.clock = clock

    def monitor_stats(self, date: Optional[str] = None) -> Dict[str, Any]:
        """
        Statistics for one calendar day (today by default).

        Returns:
            occupancy: Students currently checked in
            totalVisitsToday: Visits with a time-in or time-out on the day
            newRegistrations: Students enrolled on the day
            topPurposes: Most common purposes as [{name, count}]
            avgStay: Average completed visit length in minutes
        """
        start, end = day_bounds(parse_day(date, self.clock))

        stats = {
            'occupancy': self.visit_repo.count_open(),
            'totalVisitsToday': self.visit_repo.count_touching(start, end),
            'newRegistrations': self.student_repo.count_created_between(start, end),
            'topPurposes': self.visit_repo.top_purposes(start, end, limit=Config.TOP_PURPOSES_LIMIT),
            'avgStay': average_stay_minutes(self.visit_repo.completed_between(start, end)),
        }
        logger.debug(f"Monitor stats for {start:%Y-%m-%d}: {stats}")
        return stats

    def timed_in_students(self, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """Students with a time-in on the day, most recent first, capped for the monitor."""
        start, end = day_bounds(parse_day(date, self.clock))
        return self.student_repo.find_with_visits_between(start, end, limit=Config.TIMED_IN_STUDENTS_LIMIT)

    def students_by_date(self, date: Optional[str] = None) -> List[Dict[str, Any]]:
        start, end = day_bounds(parse_day(date, self.clock))
        return self.student_repo.find_with_visits_between(start, end)
