import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from core import constants
from core.config import settings
from core.exceptions import AuthorizationError, InvalidCredentialsError, MissingConfigException
from core.logger import get_logger

logger = get_logger(__name__)


class AuthService:
    """
    Issues and verifies admin session tokens.

    Tokens are HS256 JWTs carrying `{"role": "admin"}` and expire after
    TOKEN_EXPIRY_DAYS. There is a single admin identity guarded by
    ADMIN_PASSWORD.
    """

    def __init__(
        self,
        admin_password: Optional[str] = None,
        secret: Optional[str] = None,
        expiry_days: int = constants.TOKEN_EXPIRY_DAYS,
    ):
        self.admin_password = settings.ADMIN_PASSWORD if admin_password is None else admin_password
        self.secret = settings.JWT_SECRET if secret is None else secret
        self.expiry = timedelta(days=expiry_days)

    def is_configured(self) -> bool:
        return bool(self.secret)

    def can_login(self) -> bool:
        return bool(self.admin_password and self.secret)

    def login(self, password: Optional[str]) -> str:
        """
        Exchanges the admin password for a bearer token.

        Raises:
            MissingConfigException: password or secret not configured on the server
            InvalidCredentialsError: wrong or empty password
        """
        if not self.can_login():
            raise MissingConfigException("server_not_configured")
        if not password or not hmac.compare_digest(
            str(password).encode("utf-8"), self.admin_password.encode("utf-8")
        ):
            logger.warning("[AUTH] Rejected admin login (invalid password)")
            raise InvalidCredentialsError("invalid_password")

        token = self.issue_token()
        logger.info("[AUTH] Admin session issued", context={"expires_in_days": self.expiry.days})
        return token

    def issue_token(self) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "role": constants.TOKEN_ROLE,
            "iat": now,
            "exp": now + self.expiry,
        }
        return jwt.encode(payload, self.secret, algorithm=constants.TOKEN_ALGORITHM)

    def verify(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Validates a bearer token.

        Raises:
            MissingConfigException: no signing secret configured
            AuthorizationError: missing, expired or tampered token
        """
        if not self.is_configured():
            raise MissingConfigException("server_not_configured")
        if not token:
            raise AuthorizationError("missing_token")
        try:
            return jwt.decode(token, self.secret, algorithms=[constants.TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise AuthorizationError("invalid_token", {"reason": "expired"}) from e
        except jwt.InvalidTokenError as e:
            raise AuthorizationError("invalid_token", {"reason": type(e).__name__}) from e


def extract_bearer(header_value: Optional[str]) -> str:
    """Returns the token from an `Authorization: Bearer <token>` header, or ''."""
    if header_value and header_value.startswith("Bearer "):
        return header_value[len("Bearer "):].strip()
    return ""
