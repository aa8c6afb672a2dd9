"""Shared API dependencies for authentication and common functionality."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from yakka_chat.core.errors import AuthError
from yakka_chat.core.security import TokenClaims
from yakka_chat.models import User
from yakka_chat.services.container import ChatServices

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ChatServices:
    """Return the service container created at application startup."""
    services: ChatServices | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat services are not initialised",
        )
    return services


ServicesDep = Annotated[ChatServices, Depends(get_services)]


def get_db(services: ServicesDep) -> Generator[Session, None, None]:
    """Yield a database session from the configured session factory."""
    db = services.session_factory()
    try:
        yield db
    finally:
        db.close()


# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    services: ServicesDep,
    db: SessionDep,
) -> TokenClaims:
    """Verify the bearer token against a live, unbanned session.

    Raises:
        HTTPException: 401 if the token is missing, invalid or revoked.
    """
    token = credentials.credentials if credentials is not None else None
    try:
        return services.verifier.verify(token, db)
    except AuthError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


ClaimsDep = Annotated[TokenClaims, Depends(get_current_claims)]


def get_current_user(claims: ClaimsDep, db: SessionDep) -> User:
    """Return the user owning the verified token."""
    user = db.get(User, claims.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
