"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class. User owns the shape of a stored user record; services do
the work. Records are persisted in the key-value store as plain JSON objects,
so the mappers here (from_record / to_record) translate between the two.

Key layout:
  user:<email>                  -- user record (email is the unique lookup key)
  session:<hmac(token)>         -- session record, see auth/sessions.py

Layer rule: no imports from api/, admin/, or kv/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

USER_PREFIX = "user:"

# Keys that must never leave the service. "password" covers records written
# before passwords were hashed.
CREDENTIAL_FIELDS: frozenset[str] = frozenset({"password", "password_hash"})

# Profile fields a user may edit on their own record. Stored/JSON names.
PROFILE_FIELDS: tuple[str, ...] = ("name", "class", "major", "company", "position", "location", "industries")

_KNOWN_FIELDS: frozenset[str] = frozenset({"id", "email", "role", "created_at", *PROFILE_FIELDS, *CREDENTIAL_FIELDS})


class Role(str, Enum):
    admin = "admin"
    moderator = "moderator"
    user = "user"


MODERATOR_ROLES: frozenset[str] = frozenset({Role.admin.value, Role.moderator.value})


def user_key(email: str) -> str:
    return f"{USER_PREFIX}{email}"


def strip_credentials(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of record without any credential field."""
    return {k: v for k, v in record.items() if k not in CREDENTIAL_FIELDS}


@dataclass
class User:
    """An alumni-network account.

    email doubles as the storage key, so it cannot change after creation.
    class_year is stored under the JSON key "class" to match what the web UI
    reads and writes.
    """

    id: str
    email: str
    name: str
    role: str = Role.user.value
    password_hash: str | None = None
    class_year: str | None = None
    major: str | None = None
    company: str | None = None
    position: str | None = None
    location: str | None = None
    industries: list[str] | None = None
    created_at: str | None = None
    # Unrecognised keys found on the stored record, carried through unchanged.
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> User:
        return cls(
            id=str(record["id"]),
            email=record["email"],
            name=record.get("name") or "",
            role=record.get("role") or Role.user.value,
            password_hash=record.get("password_hash"),
            class_year=record.get("class"),
            major=record.get("major"),
            company=record.get("company"),
            position=record.get("position"),
            location=record.get("location"),
            industries=record.get("industries"),
            created_at=record.get("created_at"),
            extra={k: v for k, v in record.items() if k not in _KNOWN_FIELDS},
        )

    def to_record(self) -> dict[str, Any]:
        """Full stored representation, including the password hash."""
        record: dict[str, Any] = dict(self.extra)
        record.update(
            {
                "id": self.id,
                "email": self.email,
                "name": self.name,
                "role": self.role,
                "password_hash": self.password_hash,
                "class": self.class_year,
                "major": self.major,
                "company": self.company,
                "position": self.position,
                "location": self.location,
                "industries": self.industries,
                "created_at": self.created_at,
            }
        )
        return record

    def public_view(self) -> dict[str, Any]:
        """The record as clients and sessions see it: no credentials."""
        return strip_credentials(self.to_record())
