"""Signed session cookies for members and admins."""

import logging

from fastapi import HTTPException, Request, Response, status
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from chorecoin.core.config import settings
from chorecoin.domain.session import SessionContext


logger = logging.getLogger(__name__)

SESSION_COOKIE = "chorecoin_session"
ADMIN_COOKIE = "admin_session"

# Member sessions are long-lived, like a remembered household on a shared device
_SESSION_MAX_AGE = 60 * 60 * 24 * 90

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="member-session")
admin_serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="admin-session")


def set_session_cookie(response: Response, session: SessionContext) -> None:
    """Store the group and acting member (never the admin flag) in a signed cookie."""
    token = serializer.dumps({"group_id": session.group_id, "member_id": session.member_id})
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=_SESSION_MAX_AGE,
    )


def set_admin_cookie(response: Response, group_id: str) -> None:
    """Grant admin rights for ``group_id`` until the admin session expires."""
    token = admin_serializer.dumps({"group_id": group_id, "authenticated": True})
    response.set_cookie(
        key=ADMIN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.admin_session_max_age_seconds,
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE, httponly=True, samesite="strict")
    response.delete_cookie(key=ADMIN_COOKIE, httponly=True, samesite="strict")


async def require_session(request: Request) -> SessionContext:
    """Load the member session, rejecting requests that have not joined a group."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        logger.warning("session_missing_cookie", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Join or create a group first")

    try:
        data = serializer.loads(token, max_age=_SESSION_MAX_AGE)
    except (BadSignature, SignatureExpired) as err:
        logger.warning("session_tampered_or_expired", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired") from err

    return SessionContext(group_id=data["group_id"], member_id=data.get("member_id"))


def has_admin_session(request: Request, group_id: str) -> bool:
    """Whether the request carries a valid admin session for ``group_id``."""
    token = request.cookies.get(ADMIN_COOKIE)
    if not token:
        return False

    try:
        data = admin_serializer.loads(token, max_age=settings.admin_session_max_age_seconds)
    except (BadSignature, SignatureExpired):
        logger.warning("admin_session_tampered_or_expired", extra={"path": request.url.path})
        return False

    return bool(data.get("authenticated")) and data.get("group_id") == group_id
