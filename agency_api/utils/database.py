# agency_api/utils/database.py

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.future import select
from sqlalchemy.pool import NullPool
from agency_api.config import settings
from agency_api.utils.security import hash_password, normalize_email

# ────────────── Base for models ──────────────
Base = declarative_base()

# ────────────── Database URL ──────────────
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# ────────────── Async engine ──────────────
# SQLite connections are opened per session so they never outlive their event loop
engine_options = {"poolclass": NullPool} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}
engine = create_async_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=False,
    **engine_options
)

# ────────────── Async session ──────────────
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# ────────────── Database initialisation ──────────────
async def init_db():
    """
    Creates all tables (when missing) and makes sure the bootstrap super admin exists.
        - ADMIN_EMAIL / ADMIN_PASSWORD unset: nothing is created
        - account already present: left untouched, its password is not reset
    Returns the e-mail of the account created, or None.
    """
    # models must be imported so their tables are registered on Base
    from agency_api.models import admin, lead, customer  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return None

    email = normalize_email(settings.ADMIN_EMAIL)
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(admin.AdminUser).where(admin.AdminUser.email == email))
        if result.scalar_one_or_none() is not None:
            return None

        super_admin = admin.AdminUser(
            email=email,
            password_hash=hash_password(settings.ADMIN_PASSWORD),
            full_name=settings.ADMIN_FULL_NAME,
            role=admin.Role.SUPER_ADMIN.value,
            permissions={},
        )
        session.add(super_admin)
        await session.commit()
        return email
