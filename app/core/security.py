"""Signed access tokens, password hashing and PIN checks."""

import hashlib
import hmac
import secrets
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import get_settings

SCRYPT_PARAMS = {"n": 16384, "r": 8, "p": 1}


def get_token_serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(
        settings.secret_key,
        salt="northbank-session",
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )


def create_access_token(payload: dict[str, Any]) -> str:
    return get_token_serializer().dumps(payload)


def load_access_token(token: str, max_age_seconds: int) -> dict[str, Any] | None:
    """Return the signed payload, or None when tampered or older than max_age_seconds."""
    try:
        payload = get_token_serializer().loads(token, max_age=max_age_seconds)
    except (BadSignature, SignatureExpired):
        return None
    return payload if isinstance(payload, dict) else None


def generate_salt() -> str:
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    return hashlib.scrypt(password.encode(), salt=salt.encode(), **SCRYPT_PARAMS).hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    if not salt or not expected_hash:
        return False
    return hmac.compare_digest(hash_password(password, salt), expected_hash)


def verify_pin(candidate: str | None, expected: str) -> bool:
    """Constant-time PIN comparison; an unset expected PIN never matches."""
    if not expected or candidate is None:
        return False
    return hmac.compare_digest(str(candidate).encode(), expected.encode())
