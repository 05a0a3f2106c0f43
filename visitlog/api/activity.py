"""
Live activity stream (Server-Sent Events) and liveness routes.
"""
import logging

from flask import Blueprint, Response, current_app, stream_with_context

from visitlog.config.settings import Config
from visitlog.services.activity_hub import stream_events
from visitlog.utils.response_utils import success_response

logger = logging.getLogger(__name__)

activity_bp = Blueprint('activity', __name__)


def _services():
    return current_app.extensions['visitlog']


@activity_bp.route('/api/attendance/stream')
def attendance_stream():
    """Push check-in and check-out events to the monitor screen."""
    events = stream_events(_services().hub, Config.ACTIVITY_KEEPALIVE_SECONDS)
    response = Response(stream_with_context(events), mimetype='text/event-stream')
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    return response


@activity_bp.route('/health')
def health():
    database_ok = _services().student_repo.ping()
    return success_response("OK" if database_ok else "Degraded", {
        "status": "ok" if database_ok else "degraded",
        "database": database_ok,
        "activityListeners": _services().hub.subscriber_count,
    })
