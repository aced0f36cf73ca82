"""Pydantic schemas for the self-service profile."""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from orgadmin.schemas.validators import validate_phone


class ProfileUpdate(BaseModel):
    """Changes a user makes to their own account.

    Status and role assignments are not editable here. A new password is
    only accepted together with the current one.
    """
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = None
    current_password: str | None = None
    new_password: str | None = Field(None, min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v: str | None) -> str | None:
        return validate_phone(v)

    @model_validator(mode="after")
    def require_current_password(self) -> "ProfileUpdate":
        if self.new_password and not self.current_password:
            raise ValueError("current_password is required to set a new password")
        return self
