"""Cookie session tokens (HS256 JWT) for staff users."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from admissions.core.config import settings

ALGORITHM = "HS256"


def create_session_token(user_id: UUID, role: str, token_version: int) -> str:
    """
    Sign a session token for a staff user.

    Password and SSO login flows are handled outside this service; tokens
    minted here are for local tooling and the test suite.
    """
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify a session token against the current and previous secrets.

    Raises:
        jwt.InvalidTokenError: If no configured secret accepts the token
    """
    error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError as exc:
            error = exc
    raise error or jwt.InvalidTokenError("No session secret configured")
