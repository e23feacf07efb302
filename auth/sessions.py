"""
auth/sessions.py -- Opaque bearer-token sessions backed by the key-value store.

A session is a snapshot of the user's public view taken at login/signup and
refreshed whenever the user edits their profile. Records live at
"session:<HMAC-SHA256(SECRET_KEY, token)>":

    {"user": {...public view...}, "issued_at": 1700000000.0}

Expiry is a policy on resolve(): with ttl_seconds > 0 a session older than the
TTL is deleted and reported as absent. ttl_seconds == 0 keeps sessions until
revoke(). purge_expired() sweeps stale sessions in bulk; the API runs it
on startup and operators can run it with "python main.py purge-sessions".

Layer rule: no imports from api/ or admin/.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from auth.models import strip_credentials
from auth.tokens import generate_session_token, hash_session_token
from kv.store import KVStore

logger = logging.getLogger("alumni.auth")

SESSION_PREFIX = "session:"

# Collisions at 256 bits do not happen in practice; the bound keeps a broken
# random source from spinning forever.
_MAX_ISSUE_ATTEMPTS = 5


def _session_key(token: str) -> str:
    return f"{SESSION_PREFIX}{hash_session_token(token)}"


class SessionManager:
    def __init__(self, store: KVStore, ttl_seconds: int = 0) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    def issue(self, user_view: dict[str, Any]) -> str:
        """Create a session for user_view and return its bearer token.

        The record is written with insert-if-absent, so a freshly drawn token
        can never overwrite a live session.
        """
        record = {"user": strip_credentials(user_view), "issued_at": time.time()}
        for _ in range(_MAX_ISSUE_ATTEMPTS):
            token = generate_session_token()
            if self.store.add(_session_key(token), record):
                return token
            logger.warning("Session token collision; drawing a new token")
        raise RuntimeError("Could not allocate a unique session token")

    def resolve(self, token: str) -> dict[str, Any] | None:
        """Return the session's user view, or None if unknown or expired."""
        if not token:
            return None
        key = _session_key(token)
        record = self.store.get(key)
        if record is None:
            return None
        if self._expired(record):
            self.store.delete(key)
            return None
        return record["user"]

    def refresh(self, token: str, user_view: dict[str, Any]) -> None:
        """Replace the user view stored under token. No-op if the session is gone."""
        key = _session_key(token)
        record = self.store.get(key)
        if record is None:
            return
        self.store.set(key, {"user": strip_credentials(user_view), "issued_at": record.get("issued_at", time.time())})

    def revoke(self, token: str) -> None:
        self.store.delete(_session_key(token))

    def purge_expired(self) -> int:
        """Delete every session older than the TTL. Returns the number removed.

        resolve() only cleans up sessions that are presented again; this sweeps
        the ones whose clients never come back. A no-op when ttl_seconds is 0.
        """
        if self.ttl_seconds <= 0:
            return 0
        expired = [key for key, record in self.store.items_by_prefix(SESSION_PREFIX) if self._expired(record)]
        self.store.mdel(expired)
        if expired:
            logger.info("Purged %d expired session(s)", len(expired))
        return len(expired)

    def _expired(self, record: dict[str, Any]) -> bool:
        if self.ttl_seconds <= 0:
            return False
        return time.time() - record.get("issued_at", 0) > self.ttl_seconds
