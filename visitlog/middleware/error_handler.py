"""
Error handling and request logging middleware for the Flask application.
"""
import logging
from functools import wraps
from flask import request, g
from werkzeug.exceptions import HTTPException
from visitlog.exceptions.base import AppError
from visitlog.utils.response_utils import error_response
from visitlog.utils.correlation import correlation_context, new_correlation_id

logger = logging.getLogger(__name__)


def _correlation_id() -> str:
    return getattr(g, 'correlation_id', 'unknown')


def app_error_response(error: AppError):
    """Envelope for an application error, logged at a level matching its status."""
    if error.status_code >= 500:
        logger.error(f"[{_correlation_id()}] {error.code}: {error.message} {error.details or ''}".rstrip())
    else:
        logger.warning(f"[{_correlation_id()}] {error.code}: {error.message}")
    return error_response(error.message, error.status_code, error.code)


def handle_resource_errors(func):
    """
    Resource method decorator turning exceptions into the error envelope.

    Registered through ``Resource.method_decorators`` so flask-restful's own
    500 handling never hides an AppError.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except AppError as e:
            return app_error_response(e)
        except HTTPException as e:
            logger.warning(f"[{_correlation_id()}] HTTP {e.code}: {e.description}")
            return error_response(e.description or e.name, e.code or 500, "HTTP_ERROR")
        except Exception as e:
            logger.error(f"[{_correlation_id()}] Unexpected error: {str(e)}", exc_info=True)
            return error_response("An unexpected error occurred", 500, "INTERNAL_ERROR")
    return wrapper


def handle_errors(app):
    """Register error handlers with Flask app."""

    @app.before_request
    def setup_correlation_id():
        """Set up correlation ID for request tracking."""
        correlation_id = request.headers.get('X-Correlation-ID') or new_correlation_id()
        correlation_context.set_correlation_id(correlation_id)
        g.correlation_id = correlation_id

    @app.after_request
    def add_correlation_header(response):
        """Add correlation ID to response headers."""
        if hasattr(g, 'correlation_id'):
            response.headers['X-Correlation-ID'] = g.correlation_id
        return response

    @app.teardown_request
    def clear_correlation_id(exc):
        correlation_context.clear()

    @app.errorhandler(AppError)
    def handle_app_error(error):
        return app_error_response(error)

    @app.errorhandler(404)
    def handle_not_found(error):
        logger.warning(f"[{_correlation_id()}] 404 error for {request.url}")
        return error_response("Resource not found", 404, "NOT_FOUND")

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        logger.warning(f"[{_correlation_id()}] 405 error for {request.method} {request.url}")
        return error_response("Method not allowed", 405, "METHOD_NOT_ALLOWED")

    @app.errorhandler(413)
    def handle_too_large(error):
        logger.warning(f"[{_correlation_id()}] 413 upload too large for {request.url}")
        return error_response("Upload too large", 413, "PAYLOAD_TOO_LARGE")

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return error_response(error.description or error.name, error.code or 500, "HTTP_ERROR")
        logger.error(f"[{_correlation_id()}] Unexpected error: {str(error)}", exc_info=True)
        return error_response("An unexpected error occurred", 500, "INTERNAL_ERROR")


def log_requests(app):
    """Add request logging middleware."""

    @app.before_request
    def log_request_info():
        logger.info(f"[{_correlation_id()}] {request.method} {request.url} - {request.remote_addr}")

    @app.after_request
    def log_response_info(response):
        logger.info(f"[{_correlation_id()}] Response: {response.status_code}")
        return response
