"""Pydantic schemas for resources, actions and permission grants."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from orgadmin.models.permission import PermissionTarget
from orgadmin.schemas.validators import sanitize_string, validate_slug


# ── Resources / actions ─────────────────────────────────────

class ResourceCreate(BaseModel):
    name: str = Field(..., max_length=100)
    slug: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str) -> str:
        return sanitize_string(v, max_length=100)

    @field_validator("slug")
    @classmethod
    def validate_slug_field(cls, v: str) -> str:
        return validate_slug(v)


class ResourceUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    slug: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name_field(cls, v: str | None) -> str | None:
        return sanitize_string(v, max_length=100) if v is not None else v

    @field_validator("slug")
    @classmethod
    def validate_slug_field(cls, v: str | None) -> str | None:
        return validate_slug(v) if v is not None else v


class ResourceOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


# Actions share the resource shapes
class ActionCreate(ResourceCreate):
    pass


class ActionUpdate(ResourceUpdate):
    pass


class ActionOut(ResourceOut):
    pass


# ── Grants ──────────────────────────────────────────────────

_TARGET_FIELDS = {
    PermissionTarget.USER: "user_id",
    PermissionTarget.ROLE: "role_id",
    PermissionTarget.ORGANIZATION: "organization_id",
}


class PermissionCreate(BaseModel):
    """One grant: a resource, one or more actions, exactly one target.

    The populated id field must be the one named by `target`.
    """
    target: PermissionTarget
    resource_id: str
    action_ids: list[str] = Field(..., min_length=1)
    user_id: str | None = None
    role_id: str | None = None
    organization_id: str | None = None

    @model_validator(mode="after")
    def check_single_target(self) -> "PermissionCreate":
        populated = [
            field for field in _TARGET_FIELDS.values() if getattr(self, field)
        ]
        expected = _TARGET_FIELDS[self.target]
        if populated != [expected]:
            raise ValueError(
                f"target {self.target.value} requires exactly one of "
                f"user_id/role_id/organization_id, namely {expected}"
            )
        self.action_ids = list(dict.fromkeys(self.action_ids))
        return self

    @property
    def target_id(self) -> str:
        return getattr(self, _TARGET_FIELDS[self.target])


class PermissionUpdate(BaseModel):
    """The target of a grant is fixed; resource and actions may change."""
    resource_id: str | None = None
    action_ids: list[str] | None = Field(None, min_length=1)


class PermissionOut(BaseModel):
    id: str
    target: PermissionTarget
    user_id: str | None
    role_id: str | None
    organization_id: str | None
    resource_id: str
    resource_slug: str
    action_ids: list[str]
    action_slugs: list[str]
    created_at: datetime
