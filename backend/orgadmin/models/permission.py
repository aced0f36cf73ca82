"""Resources, actions and permission grants.

A Permission row is one grant: a resource plus a non-empty set of actions,
attached to exactly one target (user, role or organization). The check
constraint keeps the target column and the populated foreign key in step.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgadmin.database import Base
from orgadmin.models.user import _utcnow


class PermissionTarget(str, enum.Enum):
    USER = "USER"
    ROLE = "ROLE"
    ORGANIZATION = "ORGANIZATION"


class Resource(Base):
    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    permissions = relationship("Permission", back_populates="resource")


class Action(Base):
    __tablename__ = "actions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    permission_actions = relationship("PermissionAction", back_populates="action")


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (
        CheckConstraint(
            "(target = 'USER' AND user_id IS NOT NULL AND role_id IS NULL AND organization_id IS NULL)"
            " OR (target = 'ROLE' AND role_id IS NOT NULL AND user_id IS NULL AND organization_id IS NULL)"
            " OR (target = 'ORGANIZATION' AND organization_id IS NOT NULL AND user_id IS NULL AND role_id IS NULL)",
            name="ck_permissions_single_target",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    target: Mapped[PermissionTarget] = mapped_column(SAEnum(PermissionTarget), nullable=False)
    resource_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("resources.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    role_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("roles.id", ondelete="CASCADE"), index=True
    )
    organization_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    resource = relationship("Resource", back_populates="permissions")
    user = relationship("User", back_populates="permissions")
    role = relationship("Role", back_populates="permissions")
    organization = relationship("Organization", back_populates="permissions")
    actions = relationship(
        "PermissionAction", back_populates="permission", cascade="all, delete-orphan"
    )


class PermissionAction(Base):
    __tablename__ = "permission_actions"

    permission_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
    )
    action_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("actions.id", ondelete="RESTRICT"), primary_key=True
    )

    permission = relationship("Permission", back_populates="actions")
    action = relationship("Action", back_populates="permission_actions")
