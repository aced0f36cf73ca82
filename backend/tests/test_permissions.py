"""Tests for the permission evaluator.

Covers admin override, wildcard resource, manage subsumption,
organization scoping, non-membership denial and purity.
"""

import pytest

from orgadmin.auth.permissions import any_grant_matches, evaluate, grant_matches
from orgadmin.auth.snapshot import EMPTY_SNAPSHOT, GrantView, MembershipSnapshot, PermissionSnapshot


def grant(resource: str, *actions: str) -> GrantView:
    return GrantView(resource_slug=resource, action_slugs=actions)


def member_of(org_id: str, role_grants=(), organization_grants=()) -> MembershipSnapshot:
    return MembershipSnapshot(
        organization_id=org_id,
        role_grants=tuple(role_grants),
        organization_grants=tuple(organization_grants),
    )


@pytest.mark.unit
class TestMatchingRule:

    def test_exact_resource_and_action(self):
        assert grant_matches(grant("user", "view"), "user", "view")

    def test_other_resource_does_not_match(self):
        assert not grant_matches(grant("user", "view"), "report", "view")

    def test_wildcard_resource_matches_any_resource(self):
        assert grant_matches(grant("*", "view"), "anything", "view")

    def test_manage_matches_any_action(self):
        assert grant_matches(grant("user", "manage"), "user", "purge")

    def test_wildcard_is_not_a_prefix_pattern(self):
        """Only the literal "*" is a wildcard."""
        assert not grant_matches(grant("us*", "view"), "user", "view")

    def test_slugs_are_case_sensitive(self):
        assert not grant_matches(grant("User", "View"), "user", "view")

    def test_empty_grant_list(self):
        assert not any_grant_matches((), "user", "view")


@pytest.mark.unit
class TestAdminSupremacy:
    """A global admin is allowed everything."""

    @pytest.mark.parametrize(
        "resource,action,org",
        [
            ("user", "view", None),
            ("does-not-exist", "obliterate", None),
            ("report", "delete", "org-nobody-belongs-to"),
            ("*", "manage", "x"),
        ],
    )
    def test_admin_is_allowed(self, resource, action, org):
        snapshot = PermissionSnapshot(is_global_admin=True)
        assert evaluate(snapshot, resource, action, org) is True


@pytest.mark.unit
class TestWildcards:

    def test_wildcard_resource(self):
        """'*' + view allows view anywhere but nothing else."""
        snapshot = PermissionSnapshot(direct_grants=(grant("*", "view"),))
        assert evaluate(snapshot, "anything", "view") is True
        assert evaluate(snapshot, "anything", "delete") is False

    @pytest.mark.parametrize("action", ["view", "create", "edit", "delete", "export"])
    def test_manage_subsumption(self, action):
        """user + manage allows every action on user only."""
        snapshot = PermissionSnapshot(direct_grants=(grant("user", "manage"),))
        assert evaluate(snapshot, "user", action) is True
        assert evaluate(snapshot, "other", action) is False

    def test_wildcard_with_manage_is_full_access(self):
        snapshot = PermissionSnapshot(direct_grants=(grant("*", "manage"),))
        assert evaluate(snapshot, "anything", "anything") is True


@pytest.mark.unit
class TestOrganizationScoping:

    def test_role_grant_scoped_to_its_organization(self):
        """a role grant in A answers for A and for unscoped checks, not for B."""
        snapshot = PermissionSnapshot(
            memberships=(member_of("A", role_grants=[grant("report", "view")]),)
        )
        assert evaluate(snapshot, "report", "view", "A") is True
        assert evaluate(snapshot, "report", "view", "B") is False
        assert evaluate(snapshot, "report", "view") is True

    def test_organization_grants_apply_to_members(self):
        snapshot = PermissionSnapshot(
            memberships=(member_of("A", organization_grants=[grant("invoice", "view")]),)
        )
        assert evaluate(snapshot, "invoice", "view", "A") is True
        assert evaluate(snapshot, "invoice", "view") is True
        assert evaluate(snapshot, "invoice", "edit", "A") is False

    def test_grants_do_not_leak_between_memberships(self):
        snapshot = PermissionSnapshot(
            memberships=(
                member_of("A", role_grants=[grant("report", "view")]),
                member_of("B", role_grants=[grant("user", "edit")]),
            )
        )
        assert evaluate(snapshot, "report", "view", "B") is False
        assert evaluate(snapshot, "user", "edit", "A") is False
        assert evaluate(snapshot, "user", "edit", "B") is True

    def test_non_member_is_denied_despite_grants_elsewhere(self):
        """Membership grants never carry over to an organization the
        principal does not belong to."""
        snapshot = PermissionSnapshot(
            memberships=(
                member_of(
                    "A",
                    role_grants=[grant("*", "manage")],
                    organization_grants=[grant("*", "manage")],
                ),
            )
        )
        assert evaluate(snapshot, "report", "view", "B") is False

    def test_member_without_matching_grant_is_denied(self):
        snapshot = PermissionSnapshot(memberships=(member_of("A"),))
        assert evaluate(snapshot, "report", "view", "A") is False
        assert evaluate(snapshot, "report", "view") is False

    def test_direct_grants_are_checked_before_the_membership_gate(self):
        """Direct grants apply to every query, scoped or not, in the order
        admin, direct, membership."""
        snapshot = PermissionSnapshot(direct_grants=(grant("report", "view"),))
        assert evaluate(snapshot, "report", "view", "B") is True
        assert evaluate(snapshot, "report", "edit", "B") is False


@pytest.mark.unit
class TestPurity:

    def test_repeated_calls_agree_and_do_not_mutate(self):
        snapshot = PermissionSnapshot(
            direct_grants=(grant("user", "view"),),
            memberships=(member_of("A", role_grants=[grant("report", "manage")]),),
        )
        before = snapshot.model_dump()

        queries = [
            ("user", "view", None),
            ("report", "edit", "A"),
            ("report", "edit", "B"),
            ("invoice", "view", None),
        ]
        first = [evaluate(snapshot, *q) for q in queries]
        for _ in range(5):
            assert [evaluate(snapshot, *q) for q in queries] == first

        assert snapshot.model_dump() == before

    def test_snapshot_is_frozen(self):
        snapshot = PermissionSnapshot()
        with pytest.raises(Exception):
            snapshot.is_global_admin = True


@pytest.mark.unit
class TestAccessPatterns:

    def test_direct_grants_only(self):
        snapshot = PermissionSnapshot(
            direct_grants=(grant("organization", "view", "create"),)
        )
        assert evaluate(snapshot, "organization", "create") is True
        assert evaluate(snapshot, "organization", "delete") is False
        assert evaluate(snapshot, "user", "view") is False

    def test_role_grant_in_one_organization(self):
        snapshot = PermissionSnapshot(
            memberships=(member_of("org-1", role_grants=[grant("user", "manage")]),)
        )
        assert evaluate(snapshot, "user", "delete", "org-1") is True
        assert evaluate(snapshot, "user", "delete", "org-2") is False
        assert evaluate(snapshot, "user", "delete") is True

    @pytest.mark.parametrize("action", ["view", "edit", "manage"])
    def test_grant_without_actions(self, action):
        """An empty action list grants nothing."""
        snapshot = PermissionSnapshot(
            direct_grants=(GrantView(resource_slug="report", action_slugs=()),)
        )
        assert evaluate(snapshot, "report", action) is False

    def test_empty_snapshot_denies_everything(self):
        assert evaluate(EMPTY_SNAPSHOT, "user", "view") is False
        assert evaluate(EMPTY_SNAPSHOT, "user", "view", "A") is False
