# agency_api/main.py

import asyncio
import os
import multiprocessing
from contextlib import asynccontextmanager

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

# --- environment variables ---
load_dotenv()

from agency_api.config import settings
from agency_api.utils.log import Log
from agency_api.utils.database import init_db, AsyncSessionLocal
from agency_api.utils.rate_limit import RateLimiter
from agency_api.utils.storage import BlobStorage
from agency_api.services.session import cleanup_expired_sessions
from agency_api.middleware.db_middleware import DBSessionMiddleware

RATE_LIMIT_PURGE_SECONDS = 300

# --- sync logger for the early start ---
boot_log = Log()
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="main.py imports done")


async def purge_rate_limits(app: FastAPI):
    """Drops elapsed rate-limit windows so the store does not grow without bound."""
    while True:
        await asyncio.sleep(RATE_LIMIT_PURGE_SECONDS)
        limiter: RateLimiter = app.state.rate_limiter
        limiter.store.purge_expired(limiter.clock())


# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: startup started")

    # Database
    created = await init_db()
    if created:
        boot_log.log_info_sync(target="startup", message="Super admin bootstrapped", data={"email": created})
    async with AsyncSessionLocal() as session:
        removed = await cleanup_expired_sessions(session)
    boot_log.log_info_sync(target="startup", message="Database ready", data={"expired_sessions_removed": removed})

    app.state.log = Log()
    app.state.rate_limiter = RateLimiter()
    app.state.storage = BlobStorage()
    app.state.http = httpx.AsyncClient(timeout=settings.LOOKUP_TIMEOUT_SECONDS)
    purge_task = asyncio.create_task(purge_rate_limits(app))
    await app.state.log.log_info(target="startup", message="Async Log ready", data={"environment": settings.ENVIRONMENT})

    yield

    # shutdown
    purge_task.cancel()
    await app.state.http.aclose()
    await app.state.log.log_info(target="shutdown", message="Stopping application")
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log closed")


# ────────────── FastAPI application ──────────────
app = FastAPI(title="Agency Admin API", lifespan=lifespan, debug=not settings.is_production)

# CORS; credentials need explicit origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# DB middleware for request.state.db
app.add_middleware(DBSessionMiddleware)


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "body"


def _message(error: dict) -> str:
    message = error.get("msg", "")
    return message.removeprefix("Value error, ")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema violations are answered with 400 and one entry per field."""
    errors = [{"field": _field_name(e.get("loc", ())), "message": _message(e)} for e in exc.errors()]
    if hasattr(request.app.state, "log"):
        await request.app.state.log.log_warning(
            "validation", "Invalid input", {"path": request.url.path, "fields": [e["field"] for e in errors]}
        )
    return JSONResponse(status_code=400, content={"detail": "Ongeldige invoer", "errors": errors})


@app.get("/")
def read_root():
    return {"status": "ok"}


# uploaded attachments
os.makedirs(settings.STORAGE_DIR, exist_ok=True)
app.mount(settings.STORAGE_PUBLIC_URL, StaticFiles(directory=settings.STORAGE_DIR), name="files")

# ────────────── Routers ──────────────
from agency_api.routes import auth, leads, customers, analytics, users, lookup, debug

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(leads.router, prefix="/api", tags=["leads"])
app.include_router(customers.router, prefix="/api", tags=["customers"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])
app.include_router(analytics.admin_router, prefix="/api/admin", tags=["analytics"])
app.include_router(users.router, prefix="/api/admin", tags=["users"])
app.include_router(lookup.router, prefix="/api/admin", tags=["lookup"])
app.include_router(debug.router, prefix="/api/debug", tags=["debug"])

# ────────────── uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Starting uvicorn")
    uvicorn.run(
        "agency_api.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=not settings.is_production
    )
