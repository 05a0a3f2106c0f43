"""
Admin Service
Account settings for the signed-in administrator.
"""
import logging
from typing import Any, Dict, Mapping

from pydantic import ValidationError as PydanticValidationError
from werkzeug.security import check_password_hash, generate_password_hash

from visitlog.exceptions.base import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from visitlog.schemas.models import SettingsUpdate, describe_error

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(self, admin_repo):
        self.admin_repo = admin_repo

    def update_settings(self, admin_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Change username, email and/or password.

        A new password is only accepted together with the current one.

        Raises:
            UnauthorizedError: No admin id in the token
            NotFoundError: Admin no longer exists
            ValidationError: Invalid input or current password missing
            ForbiddenError: Current password is wrong
            ConflictError: Username or email taken by another admin
        """
        if not admin_id:
            raise UnauthorizedError("Unauthorized")

        try:
            request = SettingsUpdate.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid settings: {describe_error(e)}")

        admin = self.admin_repo.find_by_id(admin_id)
        if not admin:
            raise NotFoundError("Admin not found")

        changes = {}
        if request.username:
            changes['username'] = request.username
        if request.email:
            changes['email'] = request.email

        if request.new_password:
            if not request.current_password:
                raise ValidationError("Current password required")
            if not check_password_hash(admin.get('password') or '', request.current_password):
                raise ForbiddenError("Current password incorrect")
            changes['password'] = generate_password_hash(request.new_password)

        if changes:
            self.admin_repo.update(admin_id, changes)
            logger.info(f"Admin {admin_id} updated settings: {sorted(k for k in changes if k != 'password')}"
                        f"{' and password' if 'password' in changes else ''}")
        return {'ok': True}
