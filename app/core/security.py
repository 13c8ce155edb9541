"""Security utilities for JWT bearer authentication."""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import UnauthorizedError


# JWT bearer token scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)


class AuthUser(BaseModel):
    """Caller identity resolved from the access token claims."""

    id: str
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.given_name or ''} {self.family_name or ''}"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError as exc:
        raise UnauthorizedError("Could not validate credentials", error=str(exc))


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthUser:
    """
    Dependency to get the current authenticated user from JWT token.

    The ``sub`` claim is the owner identity used to scope every private
    read and write. Name and email claims are optional.

    Usage:
        @router.get("/protected")
        def protected_route(current_user: AuthUser = Depends(get_current_user)):
            return {"user_id": current_user.id}
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required", error="unauthorized")

    payload = decode_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid authentication credentials", error="unauthorized")

    return AuthUser(
        id=str(user_id),
        given_name=payload.get("given_name"),
        family_name=payload.get("family_name"),
        email=payload.get("email"),
    )
