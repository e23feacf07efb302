"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The only accepted credential is an opaque session token in the
Authorization: Bearer <token> header, resolved through the SessionManager on
app.state.

require_auth() raises Unauthorized (401) if the header is missing, malformed,
or does not resolve to a live session.
require_moderator() wraps require_auth() and raises Forbidden (403) unless the
session's role is admin or moderator.

Both only read state; they can be stacked on a router and a route without
side effects. The errors are rendered by the AuthError handler in api/main.py.

Layer rule: no imports from api/ or admin/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Depends, Request

from auth.errors import Forbidden, Unauthorized
from auth.models import MODERATOR_ROLES
from auth.sessions import SessionManager


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller: their bearer token and session view."""

    token: str
    user: dict[str, Any]

    @property
    def role(self) -> str:
        return self.user.get("role", "")


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(request: Request) -> AuthContext:
    """Require a valid session. Attaches it to request.state for downstream handlers.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: AuthContext = Depends(require_auth)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise Unauthorized()

    sessions: SessionManager = request.app.state.sessions
    user = sessions.resolve(token)
    if user is None:
        raise Unauthorized("Invalid or expired session")

    request.state.token = token
    request.state.user = user
    return AuthContext(token=token, user=user)


def require_moderator(ctx: AuthContext = Depends(require_auth)) -> AuthContext:
    """Require an admin or moderator session. 401 if unauthenticated, 403 otherwise."""
    if ctx.role not in MODERATOR_ROLES:
        raise Forbidden()
    return ctx
