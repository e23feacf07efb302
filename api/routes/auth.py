"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /auth/login      -- email/password login; returns {user, token}
  POST /auth/signup     -- register a regular user; returns {user, token}
  GET  /auth/verify     -- current session's user (requires auth)
  PUT  /auth/profile    -- edit own profile fields (requires auth)
  POST /auth/logout     -- revoke the current session (requires auth)

Security:
  login and signup are rate-limited per client IP (LOGIN_RATE_LIMIT).
  login returns the same message for unknown email and wrong password.
  Cache-Control: no-store on every response that carries a token.

Errors are raised as auth.errors exceptions and rendered by the AuthError
handler in api/main.py.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, ProfileUpdate, SignupRequest, SuccessResponse, UserResponse
from auth.dependencies import AuthContext, require_auth
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /auth/login:    public -- login endpoint must be unauthenticated
# - POST /auth/signup:   public -- self-registration creates role "user" only
# - GET  /auth/verify:   requires auth (require_auth)
# - PUT  /auth/profile:  requires auth (require_auth)
# - POST /auth/logout:   requires auth (require_auth)
router = APIRouter(prefix="/auth")

_RATE_LIMIT = get_settings().login_rate_limit


def _auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
@limiter.limit(_RATE_LIMIT)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password and open a session."""
    result = _auth_service(request).login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse.model_validate({"user": result.user, "token": result.token})


@router.post("/signup", response_model=AuthResponse)
@limiter.limit(_RATE_LIMIT)
def signup(request: Request, response: Response, body: SignupRequest) -> AuthResponse:
    """Create a regular user account and open a session for it.

    Fails with 400 if the email is already registered; the existing account
    is not modified.
    """
    result = _auth_service(request).signup(body.email, body.password, body.name)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse.model_validate({"user": result.user, "token": result.token})


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/verify", response_model=UserResponse)
def verify(ctx: AuthContext = Depends(require_auth)) -> UserResponse:
    """Return the user attached to the bearer token."""
    return UserResponse.model_validate({"user": ctx.user})


@router.put("/profile", response_model=UserResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    ctx: AuthContext = Depends(require_auth),
) -> UserResponse:
    """Apply a partial profile update. email, role, and password cannot be changed here."""
    user = _auth_service(request).update_profile(ctx.token, body.to_patch())
    return UserResponse.model_validate({"user": user})


@router.post("/logout", response_model=SuccessResponse)
def logout(request: Request, ctx: AuthContext = Depends(require_auth)) -> SuccessResponse:
    """Revoke the current session. The token stops working immediately."""
    _auth_service(request).logout(ctx.token)
    return SuccessResponse()
