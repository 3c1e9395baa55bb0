# agency_api/utils/security.py

"""
Password hashing, session tokens and small input helpers.
passlib with sha256_crypt is used so hashing behaves the same on every platform.
"""

import re
import secrets
from passlib.context import CryptContext
from starlette.requests import Request

from agency_api.config import settings

pwd_context = CryptContext(
    schemes=["sha256_crypt"],
    deprecated="auto",
    sha256_crypt__default_rounds=settings.PASSWORD_HASH_ROUNDS,
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# verified when an account does not exist, so a miss costs as much as a hit
_DUMMY_HASH = None


def hash_password(password: str) -> str:
    """
    Hashes a password.

    :param password: plain password
    :return: salted hash
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Checks a password against its hash.
    A missing or unknown hash is verified against a dummy hash and always fails.

    :param plain_password: plain password
    :param hashed_password: stored hash, or None when the account does not exist
    :return: True when the password matches
    """
    global _DUMMY_HASH
    if not hashed_password:
        if _DUMMY_HASH is None:
            _DUMMY_HASH = pwd_context.hash(secrets.token_hex(16))
        pwd_context.verify(plain_password, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def generate_session_token() -> str:
    """64 hex characters from the OS CSPRNG."""
    return secrets.token_hex(32)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email)) and len(email) <= 255


def is_valid_phone(phone: str) -> bool:
    cleaned = re.sub(r"[\s+\-().]", "", phone)
    return cleaned.isdigit() and 9 <= len(cleaned) <= 15


def sanitize_input(value: str) -> str:
    """Strips markup and script vectors from free text coming from the public form."""
    value = re.sub(r"[<>]", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value.strip()


def get_client_ip(request: Request) -> str:
    """Client address, honouring the proxy headers first."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
