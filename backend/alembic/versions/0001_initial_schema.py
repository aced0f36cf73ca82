"""Initial schema: users, organizations, roles, grants, security logs.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

user_status = sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="userstatus")
organization_status = sa.Enum("ACTIVE", "INACTIVE", name="organizationstatus")
permission_target = sa.Enum("USER", "ROLE", "ORGANIZATION", name="permissiontarget")
log_status = sa.Enum("SUCCESS", "FAILED", name="securitylogstatus")
log_type = sa.Enum(
    "LOGIN", "LOGOUT", "REFRESH", "REGISTER", "PASSWORD_CHANGE", name="securitylogtype"
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255)),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("phone", sa.String(20)),
        sa.Column("avatar", sa.String(500)),
        sa.Column("status", user_status, nullable=False),
        sa.Column("email_verified", sa.Boolean()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "organizations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", organization_status, nullable=False),
        sa.Column(
            "parent_id", sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="RESTRICT"),
        ),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)
    op.create_index("ix_organizations_parent_id", "organizations", ["parent_id"])
    op.create_index("ix_organizations_owner_id", "organizations", ["owner_id"])

    op.create_table(
        "roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_system_admin", sa.Boolean(), nullable=False),
        sa.Column(
            "organization_id", sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_roles_name", "roles", ["name"])
    op.create_index("ix_roles_organization_id", "roles", ["organization_id"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "role_id", sa.String(36),
            sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )
    op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
    op.create_index("ix_user_roles_role_id", "user_roles", ["role_id"])

    op.create_table(
        "organization_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "organization_id", sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "role_id", sa.String(36),
            sa.ForeignKey("roles.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_org_members_org_user"),
    )
    op.create_index(
        "ix_organization_members_organization_id", "organization_members", ["organization_id"]
    )
    op.create_index("ix_organization_members_user_id", "organization_members", ["user_id"])
    op.create_index("ix_organization_members_role_id", "organization_members", ["role_id"])

    op.create_table(
        "resources",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_resources_slug", "resources", ["slug"], unique=True)

    op.create_table(
        "actions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_actions_slug", "actions", ["slug"], unique=True)

    op.create_table(
        "permissions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("target", permission_target, nullable=False),
        sa.Column(
            "resource_id", sa.String(36),
            sa.ForeignKey("resources.id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("role_id", sa.String(36), sa.ForeignKey("roles.id", ondelete="CASCADE")),
        sa.Column(
            "organization_id", sa.String(36),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "(target = 'USER' AND user_id IS NOT NULL AND role_id IS NULL AND organization_id IS NULL)"
            " OR (target = 'ROLE' AND role_id IS NOT NULL AND user_id IS NULL AND organization_id IS NULL)"
            " OR (target = 'ORGANIZATION' AND organization_id IS NOT NULL AND user_id IS NULL AND role_id IS NULL)",
            name="ck_permissions_single_target",
        ),
    )
    op.create_index("ix_permissions_resource_id", "permissions", ["resource_id"])
    op.create_index("ix_permissions_user_id", "permissions", ["user_id"])
    op.create_index("ix_permissions_role_id", "permissions", ["role_id"])
    op.create_index("ix_permissions_organization_id", "permissions", ["organization_id"])

    op.create_table(
        "permission_actions",
        sa.Column(
            "permission_id", sa.String(36),
            sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "action_id", sa.String(36),
            sa.ForeignKey("actions.id", ondelete="RESTRICT"), primary_key=True,
        ),
    )

    op.create_table(
        "security_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=False),
        sa.Column("user_agent", sa.String(500), nullable=False),
        sa.Column("status", log_status, nullable=False),
        sa.Column("type", log_type, nullable=False),
        sa.Column("message", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_security_logs_user_id", "security_logs", ["user_id"])
    op.create_index("ix_security_logs_email", "security_logs", ["email"])
    op.create_index("ix_security_logs_type", "security_logs", ["type"])
    op.create_index("ix_security_logs_created_at", "security_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("security_logs")
    op.drop_table("permission_actions")
    op.drop_table("permissions")
    op.drop_table("actions")
    op.drop_table("resources")
    op.drop_table("organization_members")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("organizations")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (log_type, log_status, permission_target, organization_status, user_status):
        enum.drop(bind, checkfirst=True)
