"""
auth/service.py -- Login, signup, verification, and profile updates.

AuthService owns the user records under "user:<email>" and delegates session
bookkeeping to SessionManager. Every public method returns public views
(credential fields removed); the password hash never leaves this module.

seed_demo_users() is the startup bootstrap. It is called explicitly from the
API lifespan (and the CLI "seed" command), never at import time, and it is
idempotent: existing accounts are left untouched.

Layer rule: no imports from api/ or admin/.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from auth.errors import InvalidCredentials, NotFound, Unauthorized, UserAlreadyExists
from auth.models import PROFILE_FIELDS, Role, User, user_key
from auth.sessions import SessionManager
from auth.tokens import hash_password, verify_dummy, verify_password
from kv.store import KVStore

logger = logging.getLogger("alumni.auth")

# ---------------------------------------------------------------------------
# Demo accounts
# ---------------------------------------------------------------------------

_DEMO_USERS: tuple[dict[str, Any], ...] = (
    {
        "id": "admin-1",
        "email": "admin@alumni.edu",
        "password": "admin123",
        "name": "Admin User",
        "role": Role.admin.value,
        "class": "2010",
        "major": "Computer Science",
    },
    {
        "id": "user-1",
        "email": "user@alumni.edu",
        "password": "user123",
        "name": "Regular User",
        "role": Role.user.value,
        "class": "2018",
        "major": "Business",
    },
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AuthResult:
    user: dict[str, Any]
    token: str


class AuthService:
    def __init__(self, store: KVStore, sessions: SessionManager) -> None:
        self.store = store
        self.sessions = sessions

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_user(self, email: str) -> User | None:
        record = self.store.get(user_key(email))
        return User.from_record(record) if record is not None else None

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """Check email/password and open a session.

        Always runs one bcrypt verification, whether or not the email exists,
        so neither the message nor the response time tells the caller which
        part was wrong.
        """
        user = self.get_user(email)
        if user is None or not user.password_hash:
            verify_dummy(password)
            logger.info("Login failed: unknown account")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.info("Login failed: bad password for user %s", user.id)
            raise InvalidCredentials()

        view = user.public_view()
        token = self.sessions.issue(view)
        logger.info("Login succeeded for user %s", user.id)
        return AuthResult(user=view, token=token)

    def signup(self, email: str, password: str, name: str) -> AuthResult:
        """Register a regular user and open a session for them."""
        user = self.create_user(email, password, name, role=Role.user.value)
        view = user.public_view()
        token = self.sessions.issue(view)
        return AuthResult(user=view, token=token)

    def create_user(self, email: str, password: str, name: str, role: str = Role.user.value) -> User:
        """Persist a new account. Raises UserAlreadyExists if the email is taken.

        The existence check and the write are one insert-if-absent, so two
        concurrent signups for the same email cannot both succeed.
        """
        user = User(
            id=uuid.uuid4().hex,
            email=email,
            name=name,
            role=Role(role).value,
            password_hash=hash_password(password),
            created_at=_now_iso(),
        )
        if not self.store.add(user_key(email), user.to_record()):
            raise UserAlreadyExists()
        logger.info("Created %s account %s", user.role, user.id)
        return user

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def verify(self, token: str) -> dict[str, Any]:
        view = self.sessions.resolve(token)
        if view is None:
            raise Unauthorized("Invalid or expired session")
        return view

    def logout(self, token: str) -> None:
        self.sessions.revoke(token)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, token: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Merge patch into the caller's user record and refresh their session.

        Only PROFILE_FIELDS are applied. email, role, password and any other
        key in patch are dropped silently.
        """
        session_user = self.verify(token)
        user = self.get_user(session_user["email"])
        if user is None:
            raise NotFound("User not found")

        record = user.to_record()
        dropped = sorted(k for k in patch if k not in PROFILE_FIELDS)
        if dropped:
            logger.info("Ignoring non-editable profile fields %s for user %s", dropped, user.id)
        record.update({k: v for k, v in patch.items() if k in PROFILE_FIELDS})

        updated = User.from_record(record)
        self.store.set(user_key(updated.email), updated.to_record())
        view = updated.public_view()
        self.sessions.refresh(token, view)
        return view


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------


def seed_demo_users(store: KVStore) -> int:
    """Create the demo admin and regular accounts if they are absent.

    Safe to run on every start: existing records, including ones edited since
    the first run, are never overwritten. Returns the number of accounts created.
    """
    created = 0
    for demo in _DEMO_USERS:
        if store.get(user_key(demo["email"])) is not None:
            continue
        fields = {k: v for k, v in demo.items() if k != "password"}
        user = User.from_record(fields)
        user.password_hash = hash_password(demo["password"])
        user.created_at = _now_iso()
        if store.add(user_key(user.email), user.to_record()):
            created += 1
            logger.info("Seeded demo account %s", user.email)
    return created
