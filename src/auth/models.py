"""
Authentication Models

The verifier does not keep a user table; the Supabase token is the
source of truth for who is calling.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class CurrentUser:
    """Authenticated caller resolved from a verified JWT."""
    id: str
    email: Optional[str] = None
    role: str = "authenticated"

    @classmethod
    def from_token_payload(cls, payload: Dict[str, Any]) -> "CurrentUser":
        """
        Supabase JWT payload structure:
        {
            "sub": "user-uuid",
            "email": "user@example.com",
            "role": "authenticated",
            "aud": "authenticated",
            "exp": 1234567890
        }
        """
        return cls(
            id=str(payload["sub"]),
            email=payload.get("email"),
            role=payload.get("role", "authenticated"),
        )
