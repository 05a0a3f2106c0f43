"""
Bearer token authentication for admin-only resources.
"""
import logging
from functools import wraps
from typing import Optional

from flask import g, request

logger = logging.getLogger(__name__)


def bearer_token() -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def token_required(func):
    """
    Require a valid admin token on a resource method.

    The resource must expose ``auth_service``. Verified claims are stored on
    ``g.admin`` and the raw token on ``g.token``.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        token = bearer_token()
        g.admin = self.auth_service.verify_token(token)
        g.token = token
        return func(self, *args, **kwargs)
    return wrapper
