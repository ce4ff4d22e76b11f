"""JWT token generation and validation utilities.

Tokens carry the standard claims (exp, iat, sub) plus a ``role`` claim,
and decode into the ``Actor`` every booking operation is performed as.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from uuid import UUID

import jwt
from jwt.exceptions import InvalidTokenError

from slotbook.lib.settings import settings
from slotbook.models.users import Actor, UserRole


def create_access_token(
    user_id: Union[UUID, str],
    role: Union[UserRole, str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a user.

    Args:
        user_id: UUID of the user (stored in 'sub' claim)
        role: customer, provider or admin
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Raises:
        InvalidTokenError: If token is invalid, expired, or signature doesn't match
    """
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_actor_from_token(token: str) -> Actor:
    """Decode a token into the acting user.

    Raises:
        InvalidTokenError: If the token is invalid or its claims are malformed
    """
    payload = verify_token(token)
    try:
        return Actor(user_id=UUID(payload["sub"]), role=UserRole(payload["role"]))
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidTokenError(f"Malformed token claims: {e}") from e
