from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from orgadmin.schemas.validators import sanitize_string


class RoleCreate(BaseModel):
    """organization_id omitted → global role."""
    name: str = Field(..., max_length=100)
    description: str | None = None
    is_default: bool = False
    organization_id: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str) -> str:
        return sanitize_string(v, max_length=100)


class RoleUpdate(BaseModel):
    # Scope (organization_id) is fixed at creation
    name: str | None = Field(None, max_length=100)
    description: str | None = None
    is_default: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str | None) -> str | None:
        return sanitize_string(v, max_length=100) if v is not None else v


class RoleOut(BaseModel):
    id: str
    name: str
    description: str | None
    is_default: bool
    is_system_admin: bool
    organization_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
