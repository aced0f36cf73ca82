"""Permission snapshot: the wire contract between the snapshot builder
and every evaluator call site.

Shape (as embedded in the JWT `permissions` claim):

    {
      "is_global_admin": false,
      "direct_grants": [{"resource_slug": "user", "action_slugs": ["view"]}],
      "memberships": [
        {
          "organization_id": "…",
          "organization_grants": [...],
          "role_grants": [...]
        }
      ]
    }

All models are frozen and use tuples, so a snapshot cannot be mutated once
built. `to_claims()` / `from_claims()` round-trip losslessly through JSON.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from orgadmin.auth.grants import Grant


class GrantView(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource_slug: str
    action_slugs: tuple[str, ...] = ()

    @classmethod
    def from_grant(cls, grant: Grant) -> "GrantView":
        return cls(resource_slug=grant.resource_slug, action_slugs=grant.action_slugs)


class MembershipSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization_id: str
    organization_grants: tuple[GrantView, ...] = ()
    role_grants: tuple[GrantView, ...] = ()


class PermissionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_global_admin: bool = False
    direct_grants: tuple[GrantView, ...] = ()
    memberships: tuple[MembershipSnapshot, ...] = ()

    def membership_for(self, organization_id: str) -> MembershipSnapshot | None:
        for membership in self.memberships:
            if membership.organization_id == organization_id:
                return membership
        return None

    def to_claims(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_claims(cls, claims: dict | None) -> "PermissionSnapshot":
        """Rebuild a snapshot from a decoded token claim.

        A missing claim yields the empty snapshot, which denies everything.
        """
        if not claims:
            return cls()
        return cls.model_validate(claims)


EMPTY_SNAPSHOT = PermissionSnapshot()
