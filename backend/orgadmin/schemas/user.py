from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from orgadmin.models.user import UserStatus
from orgadmin.schemas.validators import validate_phone


class RoleBrief(BaseModel):
    id: str
    name: str

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Administrator creates a user. `role_ids` must all be global roles."""
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = None
    avatar: str | None = Field(None, max_length=500)
    status: UserStatus = UserStatus.ACTIVE
    email_verified: bool = False
    role_ids: list[str] = []

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: str | None) -> str | None:
        return validate_phone(v)


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = None
    avatar: str | None = Field(None, max_length=500)
    status: UserStatus | None = None
    email_verified: bool | None = None
    # None leaves assignments untouched; [] clears them
    role_ids: list[str] | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: str | None) -> str | None:
        return validate_phone(v)


class UserOut(BaseModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    phone: str | None
    avatar: str | None
    status: UserStatus
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    roles: list[RoleBrief] = []

    model_config = {"from_attributes": True}
