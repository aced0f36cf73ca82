"""Snapshot builder: assembles a principal's permission snapshot.

Runs once per login and once per token refresh, after the credential and
account status have been verified. The result is embedded in the access
token; nothing here is consulted again until the next refresh.

Steps:
  1. Global role assignments → is_global_admin (structural flag, or the
     configured admin role name, exact and case-sensitive).
  2. Direct user grants.
  3. Memberships in ROOT organizations only (parent_id IS NULL), each with
     the organization's own grants and the assigned role's grants.
     Sub-organization memberships are not surfaced to the evaluator.

Malformed grant rows are dropped and logged; one bad row never aborts the
snapshot.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgadmin.auth.grants import grant_from_permission
from orgadmin.auth.snapshot import GrantView, MembershipSnapshot, PermissionSnapshot
from orgadmin.config import settings
from orgadmin.middleware.exceptions import AuthenticationError, GrantIntegrityError
from orgadmin.models.organization import Organization, OrganizationMember
from orgadmin.models.permission import Permission, PermissionAction, PermissionTarget
from orgadmin.models.role import Role
from orgadmin.models.user import UserRole

logger = logging.getLogger(__name__)


def _grant_query():
    return select(Permission).options(
        selectinload(Permission.resource),
        selectinload(Permission.actions).selectinload(PermissionAction.action),
    ).execution_options(populate_existing=True)


def is_admin_role(role: Role) -> bool:
    return role.is_system_admin or role.name == settings.admin_role_name


def _to_views(principal_id: str, permissions: list[Permission]) -> tuple[GrantView, ...]:
    views = []
    for permission in permissions:
        try:
            grant = grant_from_permission(permission)
        except GrantIntegrityError as e:
            logger.warning(
                "Skipping malformed grant %s while building snapshot for %s: %s",
                permission.id, principal_id, e,
            )
            continue
        views.append(GrantView.from_grant(grant))
    return tuple(views)


async def _load_global_admin(db: AsyncSession, user_id: str) -> bool:
    result = await db.execute(
        select(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id, Role.organization_id.is_(None))
    )
    return any(is_admin_role(role) for role in result.scalars().all())


async def _load_grants(db: AsyncSession, *criteria) -> list[Permission]:
    result = await db.execute(_grant_query().where(*criteria))
    return list(result.scalars().all())


async def build_snapshot(db: AsyncSession, user_id: str) -> PermissionSnapshot:
    """Build the immutable permission snapshot for a verified principal."""
    is_global_admin = await _load_global_admin(db, user_id)

    direct = await _load_grants(
        db,
        Permission.target == PermissionTarget.USER,
        Permission.user_id == user_id,
    )

    result = await db.execute(
        select(OrganizationMember)
        .join(Organization, Organization.id == OrganizationMember.organization_id)
        .where(
            OrganizationMember.user_id == user_id,
            Organization.parent_id.is_(None),
        )
        .order_by(OrganizationMember.created_at, OrganizationMember.organization_id)
    )
    memberships = []
    for member in result.scalars().all():
        organization_grants = await _load_grants(
            db,
            Permission.target == PermissionTarget.ORGANIZATION,
            Permission.organization_id == member.organization_id,
        )
        role_grants: list[Permission] = []
        if member.role_id:
            role_grants = await _load_grants(
                db,
                Permission.target == PermissionTarget.ROLE,
                Permission.role_id == member.role_id,
            )
        memberships.append(
            MembershipSnapshot(
                organization_id=member.organization_id,
                organization_grants=_to_views(user_id, organization_grants),
                role_grants=_to_views(user_id, role_grants),
            )
        )

    return PermissionSnapshot(
        is_global_admin=is_global_admin,
        direct_grants=_to_views(user_id, direct),
        memberships=tuple(memberships),
    )


async def build_snapshot_for_session(db: AsyncSession, user_id: str) -> PermissionSnapshot:
    """build_snapshot bounded by the configured timeout.

    A timeout is an authentication failure: no snapshot, no session.
    """
    try:
        return await asyncio.wait_for(
            build_snapshot(db, user_id),
            timeout=settings.snapshot_build_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("Snapshot build timed out for user %s", user_id)
        raise AuthenticationError("Unable to establish session, please try again")
