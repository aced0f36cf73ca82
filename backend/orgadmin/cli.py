"""Management CLI.

Usage:
    python -m orgadmin.cli bootstrap            # Reserved resource/action + global admin role
    python -m orgadmin.cli grant-admin <email>  # Give a user the global admin role
"""

import sys

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from orgadmin.auth.permissions import MANAGE_ACTION, WILDCARD_RESOURCE
from orgadmin.config import settings
from orgadmin.models.permission import Action, Resource
from orgadmin.models.role import Role
from orgadmin.models.user import User, UserRole


def _engine():
    return create_engine(settings.database_url_sync)


def ensure_reserved(session: Session) -> Role:
    """Create the wildcard resource, the manage action and the global admin
    role if they are missing. Returns the admin role."""
    if not session.scalar(select(Resource).where(Resource.slug == WILDCARD_RESOURCE)):
        session.add(Resource(name="All resources", slug=WILDCARD_RESOURCE,
                             description="Matches every resource"))
        print(f"  Created resource '{WILDCARD_RESOURCE}'")

    if not session.scalar(select(Action).where(Action.slug == MANAGE_ACTION)):
        session.add(Action(name="Manage", slug=MANAGE_ACTION,
                           description="Implies every action"))
        print(f"  Created action '{MANAGE_ACTION}'")

    role = session.scalar(
        select(Role).where(
            Role.organization_id.is_(None), Role.name == settings.admin_role_name
        )
    )
    if role is None:
        role = Role(
            name=settings.admin_role_name,
            description="Full access to everything",
            is_system_admin=True,
        )
        session.add(role)
        print(f"  Created global role '{settings.admin_role_name}'")
    elif not role.is_system_admin:
        role.is_system_admin = True
        print(f"  Marked global role '{role.name}' as system admin")

    session.flush()
    return role


def bootstrap():
    with Session(_engine()) as session:
        ensure_reserved(session)
        session.commit()
    print("Bootstrap complete.")


def grant_admin(email: str) -> int:
    with Session(_engine()) as session:
        user = session.scalar(select(User).where(User.email == email.lower()))
        if user is None:
            print(f"No user with email {email}")
            return 1

        role = ensure_reserved(session)
        exists = session.scalar(
            select(UserRole).where(UserRole.user_id == user.id, UserRole.role_id == role.id)
        )
        if exists:
            print(f"{user.email} already holds '{role.name}'")
        else:
            session.add(UserRole(user_id=user.id, role_id=role.id))
            print(f"Granted '{role.name}' to {user.email} (effective from next login)")
        session.commit()
    return 0


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "bootstrap":
        bootstrap()
    elif cmd == "grant-admin" and len(sys.argv) > 2:
        sys.exit(grant_admin(sys.argv[2]))
    else:
        print("Usage: python -m orgadmin.cli [bootstrap|grant-admin <email>]")
        sys.exit(2)
