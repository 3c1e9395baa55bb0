# agency_api/services/session.py

"""
Admin sessions.

A session is a random token stored in ``admin_sessions`` together with the account
e-mail and its expiry. The browser receives the token inside a signed JWT in an
http-only cookie; a request is authenticated only when the signature is valid AND
the token still exists server-side and has not expired.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jwt import encode, decode, ExpiredSignatureError, InvalidTokenError
from sqlalchemy import delete
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from agency_api.config import settings
from agency_api.models.admin import AdminSession, AdminUser
from agency_api.utils.dates import as_utc, utcnow
from agency_api.utils.security import generate_session_token, normalize_email, verify_password

ALGORITHM = "HS256"


@dataclass(frozen=True)
class CookieOptions:
    httponly: bool
    secure: bool
    samesite: str
    max_age: int
    path: str = "/"


@dataclass(frozen=True)
class IssuedSession:
    token: str
    email: str
    cookie_value: str
    expires_at: datetime
    cookie: CookieOptions


def session_lifetime(remember_me: bool) -> timedelta:
    return timedelta(days=settings.SESSION_REMEMBER_TTL_DAYS if remember_me else settings.SESSION_TTL_DAYS)


def cookie_options(max_age: int) -> CookieOptions:
    return CookieOptions(
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=max_age,
    )


def encode_session_cookie(email: str, token: str, expires_at: datetime) -> str:
    """Signed cookie value: {"sub": email, "sid": token, "exp": expiry}."""
    return encode({"sub": email, "sid": token, "exp": expires_at}, settings.AUTH_SECRET_KEY, algorithm=ALGORITHM)


def decode_session_cookie(value: str | None) -> Optional[dict]:
    """Payload of a well-formed, correctly signed and unexpired cookie, else None."""
    if not value:
        return None
    try:
        payload = decode(value, settings.AUTH_SECRET_KEY, algorithms=[ALGORITHM])
    except (ExpiredSignatureError, InvalidTokenError):
        return None
    if not payload.get("sub") or not payload.get("sid"):
        return None
    return payload


async def authenticate_admin(db: AsyncSession, email: str, password: str) -> Optional[AdminUser]:
    """
    Account matching the credentials, or None.
    Unknown e-mails still cost a password verification.
    """
    result = await db.execute(select(AdminUser).where(AdminUser.email == normalize_email(email)))
    account = result.scalar_one_or_none()
    if not verify_password(password, account.password_hash if account else None):
        return None
    return account


async def create_admin_session(db: AsyncSession, email: str, remember_me: bool = False) -> IssuedSession:
    """
    Persists a new session and returns what the caller needs to set the cookie.
    Lifetime: SESSION_TTL_DAYS, or SESSION_REMEMBER_TTL_DAYS when remembered.
    """
    email = normalize_email(email)
    lifetime = session_lifetime(remember_me)
    now = utcnow()
    token = generate_session_token()

    db.add(AdminSession(
        token=token,
        email=email,
        remember=remember_me,
        created_at=now,
        expires_at=now + lifetime,
    ))
    await db.commit()

    return IssuedSession(
        token=token,
        email=email,
        cookie_value=encode_session_cookie(email, token, now + lifetime),
        expires_at=now + lifetime,
        cookie=cookie_options(int(lifetime.total_seconds())),
    )


async def verify_session_cookie(db: AsyncSession, cookie_value: str | None) -> Optional[AdminUser]:
    """
    Account behind a session cookie, or None when the cookie is missing, forged,
    expired, revoked, or its account no longer exists. Expired rows are removed.
    """
    payload = decode_session_cookie(cookie_value)
    if payload is None:
        return None

    result = await db.execute(select(AdminSession).where(AdminSession.token == payload["sid"]))
    session = result.scalar_one_or_none()
    if session is None or session.email != normalize_email(payload["sub"]):
        return None

    if as_utc(session.expires_at) <= utcnow():
        await db.delete(session)
        await db.commit()
        return None

    result = await db.execute(select(AdminUser).where(AdminUser.email == session.email))
    return result.scalar_one_or_none()


async def delete_admin_session(db: AsyncSession, cookie_value: str | None) -> bool:
    """Revokes the session behind the cookie; False when there was nothing to revoke."""
    payload = decode_session_cookie(cookie_value)
    if payload is None:
        return False
    result = await db.execute(delete(AdminSession).where(AdminSession.token == payload["sid"]))
    await db.commit()
    return result.rowcount > 0


async def delete_sessions_for(db: AsyncSession, email: str) -> int:
    """Revokes every session of an account (password or e-mail change)."""
    result = await db.execute(delete(AdminSession).where(AdminSession.email == normalize_email(email)))
    await db.commit()
    return result.rowcount


async def cleanup_expired_sessions(db: AsyncSession) -> int:
    result = await db.execute(delete(AdminSession).where(AdminSession.expires_at < utcnow()))
    await db.commit()
    return result.rowcount
