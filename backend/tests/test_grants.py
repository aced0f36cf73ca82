"""Tests for the grant sum type and its conversion from stored rows."""

import pytest

from orgadmin.auth.grants import (
    OrganizationGrant,
    RoleGrant,
    UserGrant,
    grant_from_permission,
)
from orgadmin.auth.snapshot import GrantView
from orgadmin.middleware.exceptions import GrantIntegrityError
from orgadmin.models.permission import (
    Action,
    Permission,
    PermissionAction,
    PermissionTarget,
    Resource,
)


def make_permission(target, *, user_id=None, role_id=None, organization_id=None,
                    resource="report", actions=("view",)) -> Permission:
    """Unsaved Permission row with its resource and actions attached."""
    permission = Permission(
        id="perm-1",
        target=target,
        user_id=user_id,
        role_id=role_id,
        organization_id=organization_id,
    )
    permission.resource = Resource(slug=resource, name=resource)
    permission.actions = [PermissionAction(action=Action(slug=a, name=a)) for a in actions]
    return permission


@pytest.mark.unit
class TestGrantConstruction:

    def test_user_grant(self):
        g = UserGrant("report", ("view",), user_id="u1")
        assert g.user_id == "u1"
        assert GrantView.from_grant(g) == GrantView(resource_slug="report", action_slugs=("view",))

    def test_empty_actions_rejected(self):
        with pytest.raises(GrantIntegrityError):
            RoleGrant("report", (), role_id="r1")

    def test_missing_resource_rejected(self):
        with pytest.raises(GrantIntegrityError):
            UserGrant("", ("view",), user_id="u1")

    @pytest.mark.parametrize("cls", [UserGrant, RoleGrant, OrganizationGrant])
    def test_missing_target_rejected(self, cls):
        with pytest.raises(GrantIntegrityError):
            cls("report", ("view",))

    def test_grants_are_immutable(self):
        g = OrganizationGrant("report", ("view",), organization_id="o1")
        with pytest.raises(Exception):
            g.resource_slug = "user"


@pytest.mark.unit
class TestGrantFromPermission:

    @pytest.mark.parametrize(
        "target,field,cls",
        [
            (PermissionTarget.USER, "user_id", UserGrant),
            (PermissionTarget.ROLE, "role_id", RoleGrant),
            (PermissionTarget.ORGANIZATION, "organization_id", OrganizationGrant),
        ],
    )
    def test_each_target_kind(self, target, field, cls):
        permission = make_permission(target, **{field: "t1"})
        g = grant_from_permission(permission)
        assert isinstance(g, cls)
        assert getattr(g, field) == "t1"

    def test_actions_are_sorted_and_deduplicated(self):
        permission = make_permission(
            PermissionTarget.USER, user_id="u1", actions=("view", "edit", "view")
        )
        assert grant_from_permission(permission).action_slugs == ("edit", "view")

    def test_target_mismatch_rejected(self):
        permission = make_permission(PermissionTarget.USER, role_id="r1")
        with pytest.raises(GrantIntegrityError):
            grant_from_permission(permission)

    def test_two_targets_rejected(self):
        permission = make_permission(PermissionTarget.ROLE, role_id="r1", user_id="u1")
        with pytest.raises(GrantIntegrityError):
            grant_from_permission(permission)

    def test_no_actions_rejected(self):
        permission = make_permission(PermissionTarget.ROLE, role_id="r1", actions=())
        with pytest.raises(GrantIntegrityError):
            grant_from_permission(permission)
