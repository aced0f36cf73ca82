"""Grant sum type.

A grant is one of:

    UserGrant(user_id, resource_slug, action_slugs)
    RoleGrant(role_id, resource_slug, action_slugs)
    OrganizationGrant(organization_id, resource_slug, action_slugs)

"Exactly one target" is a property of the type rather than a convention on
nullable columns, and an empty action set cannot be constructed. Rows read
from the store go through `grant_from_permission`, which raises
GrantIntegrityError for anything that does not fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from orgadmin.middleware.exceptions import GrantIntegrityError
from orgadmin.models.permission import Permission, PermissionTarget


@dataclass(frozen=True)
class _GrantBase:
    resource_slug: str
    action_slugs: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.resource_slug:
            raise GrantIntegrityError("grant has no resource")
        if not self.action_slugs:
            raise GrantIntegrityError("grant has no actions")


@dataclass(frozen=True)
class UserGrant(_GrantBase):
    user_id: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.user_id:
            raise GrantIntegrityError("user grant without user_id")


@dataclass(frozen=True)
class RoleGrant(_GrantBase):
    role_id: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.role_id:
            raise GrantIntegrityError("role grant without role_id")


@dataclass(frozen=True)
class OrganizationGrant(_GrantBase):
    organization_id: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.organization_id:
            raise GrantIntegrityError("organization grant without organization_id")


Grant = Union[UserGrant, RoleGrant, OrganizationGrant]


def grant_from_permission(permission: Permission) -> Grant:
    """Convert a Permission row (resource and actions loaded) into a Grant.

    Raises GrantIntegrityError when the row's target column disagrees with
    its populated foreign keys or when it carries no actions.
    """
    populated = {
        PermissionTarget.USER: permission.user_id,
        PermissionTarget.ROLE: permission.role_id,
        PermissionTarget.ORGANIZATION: permission.organization_id,
    }
    set_targets = [kind for kind, value in populated.items() if value]
    if set_targets != [permission.target]:
        raise GrantIntegrityError(
            f"permission {permission.id} target {permission.target} "
            f"does not match populated targets {set_targets}"
        )

    resource_slug = permission.resource.slug if permission.resource else ""
    action_slugs = tuple(
        sorted({pa.action.slug for pa in permission.actions if pa.action is not None})
    )

    if permission.target == PermissionTarget.USER:
        return UserGrant(resource_slug, action_slugs, user_id=permission.user_id)
    if permission.target == PermissionTarget.ROLE:
        return RoleGrant(resource_slug, action_slugs, role_id=permission.role_id)
    return OrganizationGrant(
        resource_slug, action_slugs, organization_id=permission.organization_id
    )
