"""
Shared base for API resources.
"""
from typing import Any, Dict

from flask import request
from flask_restful import Resource

from visitlog.middleware.error_handler import handle_resource_errors


def json_body() -> Dict[str, Any]:
    """Request JSON object; anything else (missing, invalid, non-object) reads as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


class ApiResource(Resource):
    """Resource with injected services and enveloped error responses."""

    method_decorators = [handle_resource_errors]

    def __init__(self, services):
        self.services = services

    @property
    def auth_service(self):
        return self.services.auth
