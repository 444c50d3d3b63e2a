"""
FastAPI Authentication Dependencies

Provides dependency injection for authentication.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src.auth.config import get_auth_config
from src.auth.jwt import verify_supabase_token, JWTError
from src.auth.models import CurrentUser

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)

DEV_USER_EMAIL = "dev@affimark.local"


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get the current authenticated user.

    Raises:
        HTTPException 401: If not authenticated
    """
    config = get_auth_config()

    # If auth is disabled (local dev), return a fixed user
    if not config.auth_enabled:
        return CurrentUser(id=config.dev_user_id, email=DEV_USER_EMAIL)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_supabase_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser.from_token_payload(payload)
