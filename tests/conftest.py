import asyncio
import os
import tempfile

import pytest

# settings are read on first import of the package
TMP_DIR = tempfile.mkdtemp(prefix="agency-api-tests-")
DB_PATH = os.path.join(TMP_DIR, "test.db")

SUPER_EMAIL = "owner@agency.test"
SUPER_PASSWORD = "owner-password-1"

os.environ.update({
    "ENVIRONMENT": "test",
    "DATABASE_URL": f"sqlite+aiosqlite:///{DB_PATH}",
    "AUTH_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
    "PASSWORD_HASH_ROUNDS": "1000",
    "ADMIN_EMAIL": SUPER_EMAIL,
    "ADMIN_PASSWORD": SUPER_PASSWORD,
    "ENABLE_TEST_LOGIN": "false",
    "ENABLE_DEBUG_ENDPOINT": "false",
    "STORAGE_DIR": os.path.join(TMP_DIR, "storage"),
    "LOG_DIR": os.path.join(TMP_DIR, "logs"),
    "LOG_PRINT": "0",
    "CBEAPI_KEY": "",
    "KBO_PARTY_API_KEY": "",
})

from fastapi.testclient import TestClient  # noqa: E402

from agency_api.main import app  # noqa: E402
from agency_api.utils.database import AsyncSessionLocal  # noqa: E402


@pytest.fixture
def client():
    """Fresh database and a fresh rate limiter for every test."""
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
    with TestClient(app) as c:
        yield c


def run_db(work):
    """Runs ``await work(session)`` against the test database and returns its result."""
    async def runner():
        async with AsyncSessionLocal() as session:
            return await work(session)
    return asyncio.run(runner())


def login(client, email=SUPER_EMAIL, password=SUPER_PASSWORD, remember_me=False):
    return client.post("/api/auth/login", json={"email": email, "password": password, "remember_me": remember_me})


def create_admin(client, email, permissions, password="member-password-1", full_name="Team Lid"):
    """Creates an account while the client is logged in as a user manager."""
    response = client.post(
        "/api/admin/users",
        json={"email": email, "password": password, "full_name": full_name, "permissions": permissions},
    )
    assert response.status_code == 201, response.text
    return response.json()


def submit_lead(client, email, ip="198.51.100.1", **fields):
    payload = {"name": "Jan Peeters", "email": email, "gdpr_consent": True, **fields}
    return client.post("/api/leads", json=payload, headers={"X-Forwarded-For": ip})


@pytest.fixture
def super_admin(client):
    response = login(client)
    assert response.status_code == 200, response.text
    return client
