# agency_api/routes/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from agency_api.config import settings
from agency_api.models.admin import Capability
from agency_api.schemas.auth import LoginRequest, LoginResponse, SessionResponse
from agency_api.services.permissions import AdminContext, permissions_payload
from agency_api.services.session import (
    IssuedSession,
    authenticate_admin,
    create_admin_session,
    delete_admin_session,
    verify_session_cookie,
)
from agency_api.utils.rate_limit import RateLimitResult, rate_limit, rate_limit_headers

router = APIRouter()

UNAUTHORIZED = "Niet geautoriseerd. Log in om toegang te krijgen."
FORBIDDEN = "Geen toegang tot dit onderdeel."
INVALID_CREDENTIALS = "Ongeldige inloggegevens. Controleer je e-mail en wachtwoord."

login_rate_limit = rate_limit("login", settings.LOGIN_RATE_LIMIT, settings.LOGIN_RATE_WINDOW_MS)
admin_rate_limit = rate_limit("admin", settings.ADMIN_RATE_LIMIT, settings.ADMIN_RATE_WINDOW_MS)


# ────────────── Session gate ──────────────
async def get_current_admin(request: Request) -> AdminContext:
    """
    Resolves the admin behind the session cookie.

    **Statuses:**
    - 401 Unauthorized: cookie missing, forged, expired or revoked, or the account is gone

    Returns: AdminContext with e-mail, role and resolved capabilities
    """
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    account = await verify_session_cookie(request.state.db, cookie)
    if account is None:
        if cookie:
            await request.app.state.log.log_warning("auth", "Rejected session cookie", {"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED)

    admin = AdminContext.from_account(account)
    request.state.admin = admin
    return admin


def require_permission(*capabilities: Capability, any_of: bool = False):
    """
    Dependency factory guarding a route with capabilities.
    By default every capability is required; any_of=True accepts one of them.
    A super admin always passes.
    """
    async def dependency(request: Request, admin: AdminContext = Depends(get_current_admin)) -> AdminContext:
        if not admin.allows(capabilities, any_of=any_of):
            await request.app.state.log.log_warning(
                "auth",
                "Missing capability",
                {"email": admin.email, "path": request.url.path, "required": [c.value for c in capabilities]},
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN)
        return admin
    return dependency


def set_session_cookie(response: Response, issued: IssuedSession) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=issued.cookie_value,
        max_age=issued.cookie.max_age,
        path=issued.cookie.path,
        httponly=issued.cookie.httponly,
        secure=issued.cookie.secure,
        samesite=issued.cookie.samesite,
    )


# ────────────── LOGIN ──────────────
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Admin login (sets the session cookie)",
    responses={
        200: {
            "description": "Logged in. The admin_session cookie is set.",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "email": "admin@example.be",
                        "expires_at": "2026-10-25T09:30:00+00:00"
                    }
                }
            }
        },
        400: {"description": "Invalid input (empty e-mail or password)"},
        401: {"description": "Wrong e-mail or password; no cookie is set"},
        429: {"description": "Too many login attempts from this address"},
    }
)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    quota: RateLimitResult = Depends(login_rate_limit),
):
    """
    Checks the credentials and opens a session.

    **Input (JSON):**
    - `email`: str
    - `password`: str
    - `remember_me`: bool, 30 instead of 7 days

    The attempt counts against the per-address login quota before the
    credentials are checked. The error message is the same whether the
    e-mail exists or not.
    """
    log = request.app.state.log
    db = request.state.db

    account = await authenticate_admin(db, credentials.email, credentials.password)
    if account is None:
        await log.log_warning("auth", "Failed login", {"email": credentials.email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
            headers=rate_limit_headers(quota),
        )

    issued = await create_admin_session(db, account.email, credentials.remember_me)
    set_session_cookie(response, issued)
    response.headers.update(rate_limit_headers(quota))

    await log.log_info("auth", "Logged in", {"email": account.email, "remember_me": credentials.remember_me})
    return LoginResponse(email=account.email, expires_at=issued.expires_at.isoformat())


# ────────────── LOGOUT ──────────────
@router.post(
    "/logout",
    summary="Ends the session",
    responses={200: {"description": "Session revoked (or there was none) and the cookie cleared"}}
)
async def logout(request: Request, response: Response):
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if await delete_admin_session(request.state.db, cookie):
        await request.app.state.log.log_info("auth", "Logged out")
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"success": True}


# ────────────── SESSION ──────────────
@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session",
    responses={
        200: {"description": "Valid session with the resolved capabilities"},
        401: {"description": "No valid session", "content": {"application/json": {"example": {"ok": False}}}},
    }
)
async def read_session(request: Request):
    account = await verify_session_cookie(request.state.db, request.cookies.get(settings.SESSION_COOKIE_NAME))
    if account is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"ok": False})

    admin = AdminContext.from_account(account)
    return SessionResponse(
        ok=True,
        email=admin.email,
        role=admin.role,
        permissions=permissions_payload(admin.permissions),
    )


# ────────────── TEST LOGIN ──────────────
@router.post(
    "/test-login",
    response_model=LoginResponse,
    summary="Login as the configured test account",
    responses={
        200: {"description": "Logged in as TEST_ADMIN_EMAIL"},
        401: {"description": "Test account missing or its password does not match"},
        404: {"description": "Test login is disabled"},
        429: {"description": "Too many login attempts from this address"},
        503: {"description": "TEST_ADMIN_EMAIL / TEST_ADMIN_PASSWORD not set"},
    }
)
async def test_login(request: Request, response: Response, quota: RateLimitResult = Depends(login_rate_limit)):
    """
    Only available with ENABLE_TEST_LOGIN or in development.
    Goes through the same session issuer as the normal login, so the
    session is stored server-side and the cookie is signed.
    """
    log = request.app.state.log

    if not settings.test_login_allowed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Niet gevonden")
    if not settings.TEST_ADMIN_EMAIL or not settings.TEST_ADMIN_PASSWORD:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Test login is niet geconfigureerd.")

    account = await authenticate_admin(request.state.db, settings.TEST_ADMIN_EMAIL, settings.TEST_ADMIN_PASSWORD)
    if account is None:
        await log.log_warning("auth", "Test login failed", {"email": settings.TEST_ADMIN_EMAIL})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    issued = await create_admin_session(request.state.db, account.email, remember_me=False)
    set_session_cookie(response, issued)
    response.headers.update(rate_limit_headers(quota))

    await log.log_info("auth", "Test login", {"email": account.email})
    return LoginResponse(email=account.email, expires_at=issued.expires_at.isoformat())
