"""
Admin authentication resources.
"""
from flask import g
import logging

from pydantic import ValidationError as PydanticValidationError

from visitlog.api.resources.base import ApiResource, json_body
from visitlog.exceptions.base import ValidationError
from visitlog.middleware.auth import token_required
from visitlog.schemas.models import LoginRequest
from visitlog.utils.response_utils import success_response

logger = logging.getLogger(__name__)


class LoginResource(ApiResource):

    def post(self):
        try:
            credentials = LoginRequest.model_validate(json_body())
        except PydanticValidationError:
            raise ValidationError("Username or email and password are required")
        if not credentials.username and not credentials.email:
            raise ValidationError("Username or email and password are required")

        token = self.services.auth.login(credentials.username, credentials.email, credentials.password)
        return success_response("Logged in", {"token": token})


class LogoutResource(ApiResource):

    @token_required
    def post(self):
        self.services.auth.logout(g.token)
        return success_response("Logged out")


class SettingsResource(ApiResource):

    @token_required
    def patch(self):
        """Update the signed-in admin's username, email or password."""
        result = self.services.admin.update_settings(g.admin.get('id'), json_body())
        return success_response("Settings updated", result)
