"""Pydantic schemas for organization and membership operations."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from orgadmin.models.organization import OrganizationStatus
from orgadmin.schemas.validators import sanitize_string, validate_slug


class OrganizationCreate(BaseModel):
    name: str = Field(..., max_length=255)
    slug: str
    description: str | None = None
    status: OrganizationStatus = OrganizationStatus.ACTIVE
    parent_id: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str) -> str:
        return sanitize_string(v, max_length=255)

    @field_validator("slug")
    @classmethod
    def validate_slug_field(cls, v: str) -> str:
        return validate_slug(v)


class OrganizationUpdate(BaseModel):
    name: str | None = Field(None, max_length=255)
    slug: str | None = None
    description: str | None = None
    status: OrganizationStatus | None = None
    # Explicit null detaches the organization from its parent
    parent_id: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str | None) -> str | None:
        return sanitize_string(v, max_length=255) if v is not None else v

    @field_validator("slug")
    @classmethod
    def validate_slug_field(cls, v: str | None) -> str | None:
        return validate_slug(v) if v is not None else v


class OrganizationOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None
    status: OrganizationStatus
    parent_id: str | None
    owner_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizationParentOption(BaseModel):
    id: str
    name: str
    slug: str

    model_config = {"from_attributes": True}


# ── Members ─────────────────────────────────────────────────

class MemberAdd(BaseModel):
    """Users to add; existing members are skipped, new ones get the
    organization's default role."""
    user_ids: list[str] = Field(..., min_length=1)


class MemberUpdate(BaseModel):
    # Must be a role of the same organization; null clears the role
    role_id: str | None = None


class MemberOut(BaseModel):
    id: str
    organization_id: str
    user_id: str
    role_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
