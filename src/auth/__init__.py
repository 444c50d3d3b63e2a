"""
Authentication Module

Supabase JWT auth for the verifier API:
- Users sign up/login via Supabase Auth on the frontend
- JWTs are validated against the Supabase JWT secret (HS256) or JWKS
- The verified token becomes a CurrentUser; no local user table

Usage:
    @router.post("/analyze")
    async def analyze(current_user: CurrentUser = Depends(get_current_user)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_supabase_token, JWTError
from .models import CurrentUser
from .dependencies import get_current_user

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "verify_supabase_token",
    "JWTError",
    "CurrentUser",
    "get_current_user",
]
