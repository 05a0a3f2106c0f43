"""
Dashboard and export resources.
"""
from flask import make_response, request
import logging

from visitlog.api.resources.base import ApiResource
from visitlog.utils.response_utils import success_response

logger = logging.getLogger(__name__)


class MonitorStatsResource(ApiResource):

    def get(self):
        stats = self.services.dashboard.monitor_stats(request.args.get('date'))
        return success_response("Stats fetched successfully", stats)


class TimedInStudentsResource(ApiResource):

    def get(self):
        students = self.services.dashboard.timed_in_students(request.args.get('date'))
        return success_response("Students fetched successfully", {"students": students})


class StudentsByDateResource(ApiResource):

    def get(self):
        students = self.services.dashboard.students_by_date(request.args.get('date'))
        return success_response("Students fetched successfully", {"students": students})


class AttendanceExportResource(ApiResource):

    def get(self):
        """Attendance as a CSV download, optionally for one ?date=YYYY-MM-DD."""
        csv_text = self.services.export.attendance_csv(request.args.get('date'))
        response = make_response(csv_text)
        response.headers['Content-Type'] = 'text/csv; charset=utf-8'
        response.headers['Content-Disposition'] = 'attachment; filename="attendance.csv"'
        return response
