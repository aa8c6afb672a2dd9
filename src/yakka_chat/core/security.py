"""Bearer token issuance and verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from yakka_chat.core.errors import AuthError
from yakka_chat.core.settings import settings
from yakka_chat.models import BannedUser, UserSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity extracted from a verified access token."""

    user_id: int
    session_id: int
    expires_at: datetime


def create_access_token(
    user_id: int,
    session_id: int,
    *,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token bound to a login session."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: dict[str, object] = {
        "sub": str(user_id),
        "sid": session_id,
        "exp": expire,
    }
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


class TokenVerifier:
    """Verifies bearer tokens and checks that their session is still live.

    Sessions are deleted when a user is auto-banned, so a token that is
    cryptographically valid can still be rejected here.
    """

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None) -> None:
        self._secret_key = secret_key or settings.secret_key
        self._algorithm = algorithm or settings.jwt_algorithm

    def decode(self, token: str | None) -> TokenClaims:
        """Check signature, expiry and claim shape without touching the database."""
        if not token:
            raise AuthError("Missing bearer token")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as err:
            raise AuthError("Could not validate credentials") from err

        subject = payload.get("sub")
        session_id = payload.get("sid")
        expires = payload.get("exp")
        if subject is None or session_id is None or expires is None:
            raise AuthError("Token is missing required claims")
        try:
            return TokenClaims(
                user_id=int(subject),
                session_id=int(session_id),
                expires_at=datetime.fromtimestamp(int(expires), UTC),
            )
        except (TypeError, ValueError) as err:
            raise AuthError("Token claims are malformed") from err

    def verify(self, token: str | None, db: Session) -> TokenClaims:
        """Return the claims of a valid, unrevoked token for a non-banned user.

        Raises:
            AuthError: If any check fails.
        """
        claims = self.decode(token)

        live_session = db.scalar(
            select(UserSession.id).where(
                UserSession.id == claims.session_id,
                UserSession.user_id == claims.user_id,
            )
        )
        if live_session is None:
            logger.info("Rejected token for revoked session %s", claims.session_id)
            raise AuthError("Session has been revoked")

        banned = db.scalar(select(BannedUser.id).where(BannedUser.user_id == claims.user_id))
        if banned is not None:
            raise AuthError("User is banned")

        return claims
