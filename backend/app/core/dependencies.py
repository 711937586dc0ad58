"""
Authentication dependency.

Tokens are minted by the platform's auth service; this service trusts the
signed claims (user_id, role and, for shelter staff, shelter_id).
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from backend.app.core.jwt import decode_access_token
from backend.app.models.enums import SHELTER_ROLES

bearer_scheme = HTTPBearer(auto_error=False)

SHELTER_ROLE_VALUES = {r.value for r in SHELTER_ROLES}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """
    Resolve the caller from the bearer token.

    Raises:
        HTTPException 401: missing, invalid or expired token, or a token
            without user_id (or a shelter role token without shelter_id)
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    if not payload.get("user_id"):
        raise _unauthorized("Invalid token payload")

    if payload.get("role") in SHELTER_ROLE_VALUES and payload.get("shelter_id") is None:
        raise _unauthorized("Shelter token missing shelter_id")

    return payload
