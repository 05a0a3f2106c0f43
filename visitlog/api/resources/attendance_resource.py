"""
Attendance API Resources.
"""
from flask import request
import logging

from visitlog.api.resources.base import ApiResource, json_body
from visitlog.exceptions.base import NotFoundError
from visitlog.schemas.models import ScanRequest, TimeInRequest, TimeOutRequest
from visitlog.utils.response_utils import success_response

logger = logging.getLogger(__name__)


class ScanResource(ApiResource):

    def post(self):
        """
        Resolve a kiosk scan to a student and the action to offer.
        """
        scan = ScanRequest.model_validate(json_body())
        result = self.services.scan.scan(scan.qr)
        if result is None:
            raise NotFoundError("Student not found")
        return success_response("Scan resolved", result)


class TimeInResource(ApiResource):

    def post(self):
        """Record a check-in."""
        data = TimeInRequest.model_validate(json_body())
        result = self.services.attendance.time_in(
            data.student_id,
            purpose=data.purpose,
            device_id=data.device_id,
            kiosk=data.kiosk,
            notes=data.notes,
        )
        return success_response(result.pop('message'), result)


class TimeOutResource(ApiResource):

    def post(self):
        """Record a check-out."""
        data = TimeOutRequest.model_validate(json_body())
        result = self.services.attendance.time_out(data.student_id)
        return success_response(result.pop('message'), result)


class RecentVisitsResource(ApiResource):

    def get(self):
        return success_response("Recent visits fetched successfully", self.services.attendance.recent_visits(request.args))
