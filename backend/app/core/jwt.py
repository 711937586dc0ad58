"""
JWT token utilities.

Tokens are issued by the surrounding auth service; this module only needs to
validate them (and mint them for tests and local tooling).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Example payload:
        {
            "sub": "driver@example.org",
            "user_id": 42,
            "role": "DRIVER",
            "shelter_id": null,
            "exp": 1234567890
        }
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT access token. Returns None when invalid or expired."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
