"""
API request and response models for the Alumni Connect REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
stored record shape. Route handlers map between the two.

The profile field "class" is a Python keyword, so it is declared as
class_year with alias "class". Responses are serialized by alias (FastAPI's
default), so clients always see "class".
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.tokens import PASSWORD_MAX_BYTES

# Character cap; the byte limit bcrypt imposes is checked separately.
_PASSWORD_MAX = 64


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Request models
#
# Text fields are stripped individually. Passwords are taken byte for byte:
# leading and trailing spaces are part of the secret.
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX, json_schema_extra={"format": "password"})

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        value = _strip(value)
        return value.lower() if isinstance(value, str) else value


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup. The new account always gets role "user"."""

    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    name: str = Field(min_length=1, max_length=200)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        value = _strip(value)
        return value.lower() if isinstance(value, str) else value

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
        return value


class ProfileUpdate(BaseModel):
    """Request body for PUT /auth/profile.

    Every field is optional; only the fields present in the body are applied.
    Unknown keys -- including email, role, and password -- are ignored rather
    than rejected, because the web UI posts the whole user object back.
    Custom keys are discarded too, not merged into the stored record: only
    the fields declared here are ever saved.

    name may be omitted but not sent as null; the other fields accept null
    to clear them.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    class_year: Optional[str] = Field(default=None, alias="class", max_length=20)
    major: Optional[str] = Field(default=None, max_length=200)
    company: Optional[str] = Field(default=None, max_length=200)
    position: Optional[str] = Field(default=None, max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    industries: Optional[list[str]] = Field(default=None, max_length=50)

    @field_validator("name", "class_year", "major", "company", "position", "location", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("name cannot be null")
        return value

    def to_patch(self) -> dict[str, Any]:
        """Fields explicitly sent by the client, keyed by their stored names."""
        return self.model_dump(exclude_unset=True, by_alias=True)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserView(BaseModel):
    """A user as clients see it. Never carries a password or hash."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    email: str
    name: str
    role: str
    class_year: Optional[str] = Field(default=None, alias="class")
    major: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    location: Optional[str] = None
    industries: Optional[list[str]] = None
    created_at: Optional[str] = None


class AuthResponse(BaseModel):
    """Returned by login and signup. token goes in the Authorization header from now on."""

    user: UserView
    token: str


class UserResponse(BaseModel):
    user: UserView


class SuccessResponse(BaseModel):
    success: bool = True


class AdminDataResponse(BaseModel):
    """Every stored record, grouped by category.

    Content records are opaque dicts. Categories configured beyond the
    default four are passed through as extra keys.
    """

    model_config = ConfigDict(extra="allow")

    events: list[dict[str, Any]] = Field(default_factory=list)
    jobs: list[dict[str, Any]] = Field(default_factory=list)
    news: list[dict[str, Any]] = Field(default_factory=list)
    users: list[dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    message: str
    detail: Optional[Any] = None
