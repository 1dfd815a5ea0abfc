"""Request dependencies: DB session, cookie auth, role checks and CSRF."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from admissions.core.security import decode_session_token
from admissions.db.enums import Role
from admissions.db.models import User
from admissions.db.session import SessionLocal
from admissions.schemas.auth import UserSession

COOKIE_NAME = "admissions_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """Per-request session; routers commit, this only closes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def _user_id_from_claims(claims: dict) -> UUID:
    try:
        return UUID(str(claims.get("sub")))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid session")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the staff user behind the session cookie.

    The token must verify, point at an active user, and carry that user's
    current token_version (bumping the version revokes outstanding cookies).

    Raises:
        HTTPException 401: Authentication failed
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_session_token(token)
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid session")

    user = db.get(User, _user_id_from_claims(claims))
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("Account disabled")
    if user.token_version != claims.get("token_version"):
        raise _unauthorized("Session revoked")
    return user


def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Authenticated user plus role and, for counselors, their profile id.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Role stored on the user is not one we know
    """
    user = get_current_user(request, db)
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )

    profile = user.counselor_profile
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
        counselor_id=profile.id if profile else None,
    )


def require_roles(allowed_roles: list[Role]):
    """
    Build a dependency that admits only the given roles.

    Usage:
        session: UserSession = Depends(require_roles([Role.ADMIN, Role.MANAGEMENT]))
    """
    def dependency(request: Request, db: Session = Depends(get_db)) -> UserSession:
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def require_counselor(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """Session of a counselor that owns a counselor profile."""
    session = get_current_session(request, db)
    if session.role != Role.COUNSELOR or session.counselor_id is None:
        raise HTTPException(status_code=403, detail="Counselor profile required")
    return session


def require_csrf_header(request: Request) -> None:
    """
    Reject cookie-authenticated mutations that lack the XHR header.

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
