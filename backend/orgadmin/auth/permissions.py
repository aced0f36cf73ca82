"""Permission evaluator.

Decides whether a principal may perform `action_slug` on `resource_slug`,
optionally inside one organization, using only the session snapshot:

  1. Global admin → allowed, whatever the query.
  2. Direct (user-level) grants.
  3. organization_id given: the principal must be a member of that
     organization; its role grants, then its organization grants.
     Not a member → denied, even if a grant elsewhere would match.
  4. organization_id omitted: any membership's role or organization
     grants.
  5. Otherwise denied.

Matching rule for one grant:
    (grant.resource_slug == resource_slug or grant.resource_slug == "*")
    and (action_slug in grant.action_slugs or "manage" in grant.action_slugs)

Everything here is pure: no logging, no I/O, no mutation of the snapshot.
The same function backs the server-side guard and the client affordance
check.
"""

from __future__ import annotations

from typing import Iterable

from orgadmin.auth.snapshot import GrantView, MembershipSnapshot, PermissionSnapshot

# ── Reserved sentinels ──────────────────────────────────────

WILDCARD_RESOURCE = "*"     # every resource
MANAGE_ACTION = "manage"    # every action on the matched resource

RESERVED_RESOURCE_SLUGS = frozenset({WILDCARD_RESOURCE})
RESERVED_ACTION_SLUGS = frozenset({MANAGE_ACTION})


# ── Matching ────────────────────────────────────────────────

def grant_matches(grant: GrantView, resource_slug: str, action_slug: str) -> bool:
    if grant.resource_slug != resource_slug and grant.resource_slug != WILDCARD_RESOURCE:
        return False
    return action_slug in grant.action_slugs or MANAGE_ACTION in grant.action_slugs


def any_grant_matches(
    grants: Iterable[GrantView], resource_slug: str, action_slug: str
) -> bool:
    return any(grant_matches(g, resource_slug, action_slug) for g in grants)


def membership_allows(
    membership: MembershipSnapshot, resource_slug: str, action_slug: str
) -> bool:
    # Role grants first, organization-level grants second; either suffices.
    return any_grant_matches(
        membership.role_grants, resource_slug, action_slug
    ) or any_grant_matches(membership.organization_grants, resource_slug, action_slug)


# ── Evaluation ──────────────────────────────────────────────

def evaluate(
    snapshot: PermissionSnapshot,
    resource_slug: str,
    action_slug: str,
    organization_id: str | None = None,
) -> bool:
    """Return True if the snapshot permits the action on the resource."""
    if snapshot.is_global_admin:
        return True

    if any_grant_matches(snapshot.direct_grants, resource_slug, action_slug):
        return True

    if organization_id:
        membership = snapshot.membership_for(organization_id)
        if membership is None:
            return False
        return membership_allows(membership, resource_slug, action_slug)

    return any(
        membership_allows(m, resource_slug, action_slug) for m in snapshot.memberships
    )
