"""
Unit tests for AuthService.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.exceptions import AuthorizationError, InvalidCredentialsError, MissingConfigException
from services.auth_service import AuthService, extract_bearer

SECRET = "unit-test-secret-0123456789-abcdefgh"


class TestAuthService:
    @pytest.fixture
    def auth(self):
        return AuthService(admin_password="letmein", secret=SECRET)

    def test_login_issues_verifiable_token(self, auth):
        token = auth.login("letmein")
        claims = auth.verify(token)
        assert claims["role"] == "admin"

    def test_token_expires_in_30_days(self, auth):
        claims = jwt.decode(auth.login("letmein"), SECRET, algorithms=["HS256"])
        lifetime = claims["exp"] - claims["iat"]
        assert lifetime == int(timedelta(days=30).total_seconds())

    @pytest.mark.parametrize("password", ["wrong", "", None])
    def test_wrong_password(self, auth, password):
        with pytest.raises(InvalidCredentialsError) as exc:
            auth.login(password)
        assert exc.value.message == "invalid_password"
        assert exc.value.requires_reauth is False

    def test_login_without_configuration(self):
        auth = AuthService(admin_password="", secret=SECRET)
        with pytest.raises(MissingConfigException):
            auth.login("anything")

    def test_verify_missing_token(self, auth):
        with pytest.raises(AuthorizationError) as exc:
            auth.verify("")
        assert exc.value.message == "missing_token"

    def test_verify_tampered_token(self, auth):
        other = AuthService(admin_password="letmein", secret="another-secret-abcdefgh-0123456789")
        with pytest.raises(AuthorizationError) as exc:
            auth.verify(other.issue_token())
        assert exc.value.message == "invalid_token"

    def test_verify_expired_token(self, auth):
        past = datetime.now(timezone.utc) - timedelta(days=31)
        token = jwt.encode(
            {"role": "admin", "iat": past, "exp": past + timedelta(days=1)}, SECRET, algorithm="HS256"
        )
        with pytest.raises(AuthorizationError) as exc:
            auth.verify(token)
        assert exc.value.details["reason"] == "expired"

    def test_verify_without_secret(self):
        with pytest.raises(MissingConfigException):
            AuthService(admin_password="x", secret="").verify("token")


class TestExtractBearer:
    def test_bearer(self):
        assert extract_bearer("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "bearer abc"])
    def test_not_bearer(self, header):
        assert extract_bearer(header) == ""
