"""
Main Application Factory.
"""
from flask import Flask
from flask_restful import Api
from visitlog.config.settings import Config
from visitlog.api.activity import activity_bp
from visitlog.api.resources.attendance_resource import (
    ScanResource, TimeInResource, TimeOutResource, RecentVisitsResource
)
from visitlog.api.resources.auth_resource import LoginResource, LogoutResource, SettingsResource
from visitlog.api.resources.dashboard_resource import (
    MonitorStatsResource, TimedInStudentsResource, StudentsByDateResource, AttendanceExportResource
)
from visitlog.api.resources.student_resource import (
    StudentListResource, StudentNumberResource, StudentResource,
    StudentPhotoResource, StudentHistoryResource, StudentQRResource
)
from visitlog.middleware.error_handler import handle_errors, log_requests
import logging

logger = logging.getLogger(__name__)

ROUTES = [
    (ScanResource, '/api/attendance/scan'),
    (TimeInResource, '/api/attendance/time-in'),
    (TimeOutResource, '/api/attendance/time-out'),
    (RecentVisitsResource, '/api/attendance/recent'),
    (StudentListResource, '/api/students'),
    (StudentNumberResource, '/api/students/generate-number', '/api/students/generateNo'),
    (StudentResource, '/api/students/<string:student_id>'),
    (StudentPhotoResource, '/api/students/<string:student_id>/photo'),
    (StudentHistoryResource, '/api/students/<string:student_id>/history'),
    (StudentQRResource, '/api/students/<string:student_id>/qr'),
    (MonitorStatsResource, '/api/dashboard/monitor-stats'),
    (TimedInStudentsResource, '/api/dashboard/timed-in-students'),
    (StudentsByDateResource, '/api/dashboard/all-students-by-date'),
    (AttendanceExportResource, '/api/export/attendance'),
    (LoginResource, '/api/auth/login'),
    (LogoutResource, '/api/auth/logout'),
    (SettingsResource, '/api/admin/settings'),
]


def create_app(services=None):
    """
    Create and configure Flask application.

    Args:
        services: Prebuilt ServiceContainer; when omitted the configuration is
                  validated and MongoDB/S3 backed services are created
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(Config)

    if services is None:
        # Validate configuration
        try:
            Config.validate()
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        from visitlog.services.container import build_services
        services = build_services()
        services.ensure_indexes()

    app.extensions['visitlog'] = services

    # Set up error handling and logging middleware
    handle_errors(app)
    log_requests(app)

    # Set security headers
    @app.after_request
    def set_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-XSS-Protection'] = '1; mode=block'
        if Config.CORS_ALLOW_ORIGIN:
            response.headers['Access-Control-Allow-Origin'] = Config.CORS_ALLOW_ORIGIN
            response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, X-Correlation-ID'
            response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PATCH, OPTIONS'
        return response

    api = Api(app)

    # Register Resources
    for resource, *urls in ROUTES:
        api.add_resource(resource, *urls, resource_class_kwargs=services.resource_kwargs())

    # Live activity stream and health check
    app.register_blueprint(activity_bp)

    return app
