"""
API dependencies for FastAPI dependency injection.

Provides database sessions, the authenticated actor, and the booking
engine services bound to the request session.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from slotbook.lib.db import get_db as get_db_session
from slotbook.lib.jwt import get_actor_from_token
from slotbook.models.users import Actor
from slotbook.services.booking_service import BookingLifecycle
from slotbook.services.provider_service import ProviderCatalog


# Re-export get_db for convenience
get_db = get_db_session


# HTTP Bearer token security scheme
security = HTTPBearer()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """
    Dependency to get the acting user from the JWT bearer token.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        return get_actor_from_token(credentials.credentials)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_booking_lifecycle(db: Session = Depends(get_db)) -> BookingLifecycle:
    return BookingLifecycle(db)


def get_provider_catalog(db: Session = Depends(get_db)) -> ProviderCatalog:
    return ProviderCatalog(db)
