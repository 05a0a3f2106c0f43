"""
Auth Service
Issues admin JWTs, revokes them on logout and verifies bearer tokens.
"""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from werkzeug.security import check_password_hash

from visitlog.config.settings import Config
from visitlog.exceptions.base import UnauthorizedError, ValidationError
from visitlog.services.token_revocation import TokenRevocationStore

logger = logging.getLogger(__name__)


class AuthService:
    """Admin authentication with revocable bearer tokens."""

    def __init__(self, admin_repo, revocation_store: TokenRevocationStore,
                 secret: str = None, algorithm: str = None, expiry_seconds: int = None):
        self.admin_repo = admin_repo
        self.revocation_store = revocation_store
        self.secret = secret or Config.JWT_SECRET
        self.algorithm = algorithm or Config.JWT_ALGORITHM
        self.expiry_seconds = expiry_seconds or Config.JWT_EXPIRY_SECONDS

    def issue_token(self, admin: Dict[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'id': str(admin['_id']),
            'username': admin.get('username'),
            'email': admin.get('email'),
            'iat': now,
            'exp': now + timedelta(seconds=self.expiry_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def login(self, username: Optional[str], email: Optional[str], password: str) -> str:
        """
        Check admin credentials.

        Either identifier may hold a username or an email address.

        Returns:
            Signed JWT

        Raises:
            UnauthorizedError: Unknown admin or wrong password
        """
        admin = self.admin_repo.find_for_login(username, email)
        if not admin or not check_password_hash(admin.get('password') or '', password):
            logger.warning(f"Failed login attempt for {username or email!r}")
            raise UnauthorizedError("Invalid credentials")

        logger.info(f"Admin {admin.get('username')} logged in")
        return self.issue_token(admin)

    def logout(self, token: Optional[str]) -> None:
        """Revoke a token until it would have expired anyway."""
        if not token:
            raise ValidationError("No token provided")

        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            claims = {}

        exp = claims.get('exp')
        if exp:
            ttl = max(0.0, float(exp) - time.time())
        else:
            ttl = Config.TOKEN_REVOCATION_DEFAULT_TTL
        self.revocation_store.revoke(token, ttl)
        logger.info(f"Token revoked for {ttl:.0f}s")

    def verify_token(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Validate a bearer token.

        Returns:
            Token claims

        Raises:
            UnauthorizedError: Missing, revoked, expired or forged token
        """
        if not token:
            raise UnauthorizedError("No token provided")
        if self.revocation_store.is_revoked(token):
            raise UnauthorizedError("Token revoked")
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            logger.debug(f"Token rejected: {e}")
            raise UnauthorizedError("Invalid token")
