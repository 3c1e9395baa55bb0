# agency_api/routes/debug.py

from fastapi import APIRouter, HTTPException, Request, status

from agency_api.config import settings
from agency_api.services.session import decode_session_cookie, verify_session_cookie

router = APIRouter()


@router.get(
    "/auth",
    summary="Session diagnostics",
    responses={
        200: {"description": "Which auth pieces are present; never their values"},
        404: {"description": "Endpoint disabled (production or ENABLE_DEBUG_ENDPOINT off)"},
    }
)
async def debug_auth(request: Request):
    """
    Only served with ENABLE_DEBUG_ENDPOINT outside production.
    """
    if not settings.ENABLE_DEBUG_ENDPOINT or settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Niet gevonden")

    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    account = await verify_session_cookie(request.state.db, cookie)

    await request.app.state.log.log_info("auth", "Debug endpoint used")
    return {
        "environment": settings.ENVIRONMENT,
        "cookie": {
            "present": cookie is not None,
            "signature_valid": decode_session_cookie(cookie) is not None,
            "session_valid": account is not None,
        },
        "settings": {
            "AUTH_SECRET_KEY": bool(settings.AUTH_SECRET_KEY),
            "ADMIN_EMAIL": bool(settings.ADMIN_EMAIL),
            "ADMIN_PASSWORD": bool(settings.ADMIN_PASSWORD),
            "TEST_ADMIN_EMAIL": bool(settings.TEST_ADMIN_EMAIL),
            "TEST_ADMIN_PASSWORD": bool(settings.TEST_ADMIN_PASSWORD),
            "CBEAPI_KEY": bool(settings.CBEAPI_KEY),
            "KBO_PARTY_API_KEY": bool(settings.KBO_PARTY_API_KEY),
        },
        "test_login_allowed": settings.test_login_allowed,
    }
