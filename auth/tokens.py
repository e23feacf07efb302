"""
auth/tokens.py -- Password hashing and session-token utilities.

Security design decisions:
  Passwords: bcrypt, used directly. Bcrypt is the right choice for
       low-entropy secrets (passwords) because its cost factor makes brute-force
       expensive. The _DUMMY_HASH constant enables timing equalization in
       AuthService.login() so response time does not reveal whether an email
       is registered.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The
       store never sees the raw token; it keys sessions by
       HMAC-SHA256(SECRET_KEY, token). Lookup stays O(1) and a leaked database
       cannot be replayed as bearer tokens. bcrypt's intentional slowness is
       unnecessary for high-entropy values.

  SECRET_KEY: sourced from core.config.get_settings(). See core/config.py for
       the dev/production policy.

Layer rule: no imports from api/, admin/, or kv/.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

import bcrypt

from auth.errors import InvalidPassword
from core.config import get_settings

# bcrypt rejects (5.x) or truncates (4.x) anything longer.
PASSWORD_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises InvalidPassword if the UTF-8 encoding exceeds PASSWORD_MAX_BYTES,
    so a long password is never silently truncated.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        raise InvalidPassword()
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    encoded = plain.encode("utf-8")
    if len(encoded) > PASSWORD_MAX_BYTES:
        # No stored hash can match: hash_password refuses such input.
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. Verify against this when the email is unknown.
_DUMMY_HASH: str = hash_password("alumni_timing_dummy")


def verify_dummy(plain: str) -> None:
    """Spend one bcrypt verification without a real hash."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a new opaque bearer token (43 URL-safe characters, 256 bits)."""
    return secrets.token_urlsafe(32)


def hash_session_token(token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, token) as a hex string."""
    return hmac.new(
        get_settings().secret_key.encode(),
        token.encode(),
        hashlib.sha256,
    ).hexdigest()
