# agency_api/config.py

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ENVIRONMENT: str = "production"     # development | production

    DATABASE_URL: str                   # sqlite+aiosqlite:///./agency.db, postgresql+asyncpg://...

    # ────────────── Sessions ──────────────
    AUTH_SECRET_KEY: str
    SESSION_COOKIE_NAME: str = "admin_session"
    SESSION_TTL_DAYS: int = 7
    SESSION_REMEMBER_TTL_DAYS: int = 30
    PASSWORD_HASH_ROUNDS: int = 535000

    # bootstrap super admin, created at startup when missing
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_FULL_NAME: str = "Beheerder"

    # ────────────── Rate limits ──────────────
    LOGIN_RATE_LIMIT: int = 10
    LOGIN_RATE_WINDOW_MS: int = 15 * 60 * 1000
    LEAD_FORM_RATE_LIMIT: int = 5
    LEAD_FORM_RATE_WINDOW_MS: int = 10 * 60 * 1000
    ADMIN_RATE_LIMIT: int = 100
    ADMIN_RATE_WINDOW_MS: int = 60 * 1000

    # ────────────── Test login / debug ──────────────
    ENABLE_TEST_LOGIN: bool = False
    TEST_ADMIN_EMAIL: Optional[str] = None
    TEST_ADMIN_PASSWORD: Optional[str] = None
    ENABLE_DEBUG_ENDPOINT: bool = False

    # ────────────── Blob storage ──────────────
    STORAGE_DIR: str = "storage"
    STORAGE_PUBLIC_URL: str = "/files"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # ────────────── External lookups ──────────────
    CBEAPI_KEY: Optional[str] = None
    KBO_PARTY_API_KEY: Optional[str] = None
    LOOKUP_TIMEOUT_SECONDS: float = 20.0

    # comma separated origins allowed to call the API with the session cookie
    CORS_ORIGINS: str = "http://localhost:3000"

    LOG_DIR: str = "logs"
    LOG_PRINT: str = "1"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def test_login_allowed(self) -> bool:
        return not self.is_production and (self.ENABLE_TEST_LOGIN or self.ENVIRONMENT.lower() == "development")


settings = Settings()
