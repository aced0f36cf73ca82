from pydantic import BaseModel, EmailStr, Field, field_validator

from orgadmin.auth.snapshot import PermissionSnapshot
from orgadmin.schemas.user import UserOut
from orgadmin.schemas.validators import validate_phone


# ── Self-registration ───────────────────────────────────────

class RegisterRequest(BaseModel):
    """A user registers themselves; they receive the global default role."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: str | None) -> str | None:
        return validate_phone(v)


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut
    permissions: PermissionSnapshot


# ── Token refresh / logout ───────────────────────────────────

class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    # Revoked alongside the access token when supplied
    refresh_token: str | None = None


# ── Current principal ────────────────────────────────────────

class MeResponse(BaseModel):
    """Profile plus the session snapshot, so a client can run the same
    evaluation locally to decide which controls to show."""
    user: UserOut
    permissions: PermissionSnapshot


# ── Affordance check ─────────────────────────────────────────

class PermissionQuery(BaseModel):
    resource: str = Field(..., min_length=1, max_length=100)
    action: str = Field(..., min_length=1, max_length=100)
    organization_id: str | None = None


class PermissionCheckRequest(BaseModel):
    checks: list[PermissionQuery] = Field(..., min_length=1, max_length=200)


class PermissionCheckResult(BaseModel):
    resource: str
    action: str
    organization_id: str | None
    allowed: bool


class PermissionCheckResponse(BaseModel):
    results: list[PermissionCheckResult]
