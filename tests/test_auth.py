"""
Authentication Tests

Tests for the Supabase JWT authentication system.
"""

import asyncio

import pytest
from datetime import datetime, timedelta
from uuid import uuid4
from unittest.mock import patch

import jwt
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from src.auth.config import AuthConfig
from src.auth.dependencies import get_current_user
from src.auth.jwt import verify_supabase_token, JWTError
from src.auth.models import CurrentUser


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def auth_config():
    """Create test auth config."""
    return AuthConfig(
        supabase_url="https://test.supabase.co",
        supabase_jwt_secret="super-secret-jwt-key-for-testing",
        jwt_algorithm="HS256",
        jwt_audience="authenticated",
        auth_enabled=True,
    )


@pytest.fixture
def valid_jwt_payload():
    """Create valid JWT payload."""
    return {
        "sub": str(uuid4()),
        "email": "user@test.com",
        "role": "authenticated",
        "aud": "authenticated",
        "exp": int((datetime.utcnow() + timedelta(hours=1)).timestamp()),
        "iat": int(datetime.utcnow().timestamp()),
    }


@pytest.fixture
def create_test_token(auth_config):
    """Factory to create test JWT tokens."""
    def _create(payload: dict) -> str:
        return jwt.encode(
            payload,
            auth_config.supabase_jwt_secret,
            algorithm=auth_config.jwt_algorithm,
        )
    return _create


# =============================================================================
# JWT VALIDATION TESTS
# =============================================================================

class TestJWTValidation:
    """Tests for JWT token validation."""

    def test_valid_token(self, auth_config, valid_jwt_payload, create_test_token):
        """Test that a valid token is accepted."""
        with patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            token = create_test_token(valid_jwt_payload)
            payload = verify_supabase_token(token)

            assert payload["sub"] == valid_jwt_payload["sub"]
            assert payload["email"] == valid_jwt_payload["email"]

    def test_expired_token(self, auth_config, valid_jwt_payload, create_test_token):
        """Test that expired tokens are rejected."""
        valid_jwt_payload["exp"] = int((datetime.utcnow() - timedelta(hours=1)).timestamp())

        with patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            token = create_test_token(valid_jwt_payload)

            with pytest.raises(JWTError, match="expired"):
                verify_supabase_token(token)

    def test_invalid_signature(self, auth_config, valid_jwt_payload):
        """Test that tokens with invalid signatures are rejected."""
        token = jwt.encode(
            valid_jwt_payload,
            "a-different-secret-that-is-long-enough",
            algorithm="HS256",
        )

        with patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            with pytest.raises(JWTError, match="signature"):
                verify_supabase_token(token)

    def test_missing_sub_claim(self, auth_config, valid_jwt_payload, create_test_token):
        """Test that tokens without 'sub' claim are rejected."""
        del valid_jwt_payload["sub"]

        with patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            token = create_test_token(valid_jwt_payload)

            with pytest.raises(JWTError, match="sub"):
                verify_supabase_token(token)

    def test_invalid_audience(self, auth_config, valid_jwt_payload, create_test_token):
        """Test that tokens with wrong audience are rejected."""
        valid_jwt_payload["aud"] = "wrong-audience"

        with patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            token = create_test_token(valid_jwt_payload)

            with pytest.raises(JWTError, match="audience"):
                verify_supabase_token(token)

    def test_no_jwt_secret_configured(self):
        """Test error when JWT secret not configured."""
        config = AuthConfig(supabase_jwt_secret="")

        with patch("src.auth.jwt.get_auth_config", return_value=config):
            with pytest.raises(JWTError, match="not configured"):
                verify_supabase_token("any-token")

    def test_asymmetric_algorithm_requires_url(self):
        config = AuthConfig(supabase_url="", jwt_algorithm="ES256")

        with patch("src.auth.jwt.get_auth_config", return_value=config):
            with pytest.raises(JWTError, match="SUPABASE_URL"):
                verify_supabase_token("any-token")


# =============================================================================
# CURRENT USER TESTS
# =============================================================================

class TestCurrentUser:
    """Tests for resolving the caller from a token payload."""

    def test_from_token_payload(self, valid_jwt_payload):
        user = CurrentUser.from_token_payload(valid_jwt_payload)

        assert user.id == valid_jwt_payload["sub"]
        assert user.email == "user@test.com"
        assert user.role == "authenticated"

    def test_from_minimal_payload(self):
        user = CurrentUser.from_token_payload({"sub": "abc"})

        assert user.id == "abc"
        assert user.email is None
        assert user.role == "authenticated"

    def test_dev_user_when_auth_disabled(self):
        config = AuthConfig(auth_enabled=False, dev_user_id="dev-user")

        with patch("src.auth.dependencies.get_auth_config", return_value=config):
            user = asyncio.run(get_current_user(None))

        assert user.id == "dev-user"

    def test_missing_credentials_rejected(self, auth_config):
        with patch("src.auth.dependencies.get_auth_config", return_value=auth_config):
            with pytest.raises(HTTPException) as exc_info:
                asyncio.run(get_current_user(None))

        assert exc_info.value.status_code == 401

    def test_bearer_token_resolves_user(self, auth_config, valid_jwt_payload, create_test_token):
        token = create_test_token(valid_jwt_payload)
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        with patch("src.auth.dependencies.get_auth_config", return_value=auth_config), \
                patch("src.auth.jwt.get_auth_config", return_value=auth_config):
            user = asyncio.run(get_current_user(credentials))

        assert user.id == valid_jwt_payload["sub"]


# =============================================================================
# AUTH CONFIG TESTS
# =============================================================================

class TestAuthConfig:
    """Tests for auth configuration."""

    def test_is_configured_true(self, auth_config):
        """Test is_configured returns True when properly configured."""
        assert auth_config.is_configured is True

    def test_is_configured_false_missing_url(self):
        """Test is_configured returns False when URL missing."""
        config = AuthConfig(
            supabase_url="",
            supabase_jwt_secret="secret",
        )
        assert config.is_configured is False

    def test_is_configured_false_missing_secret(self):
        """Test is_configured returns False when secret missing."""
        config = AuthConfig(
            supabase_url="https://test.supabase.co",
            supabase_jwt_secret="",
        )
        assert config.is_configured is False

    def test_supabase_project_ref(self, auth_config):
        """Test extracting project ref from URL."""
        assert auth_config.supabase_project_ref == "test"

    def test_supabase_project_ref_none(self):
        """Test project ref is None when URL not set."""
        config = AuthConfig(supabase_url="")
        assert config.supabase_project_ref is None
