import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgadmin.database import Base
from orgadmin.models.user import _utcnow


class Role(Base):
    """A named bundle of grants.

    organization_id IS NULL → global role (assigned through UserRole).
    organization_id set     → organization-scoped role (assigned through
                              OrganizationMember.role_id).

    Name uniqueness and the single-default-per-scope rule are enforced by
    orgadmin.services.roles inside the request transaction; a plain unique
    constraint cannot cover the NULL (global) scope.
    """

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Structural admin marker; the legacy name match still applies
    is_system_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("organizations.id", ondelete="CASCADE"), index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    organization = relationship("Organization", back_populates="roles")
    user_roles = relationship("UserRole", back_populates="role", passive_deletes=True)
    members = relationship("OrganizationMember", back_populates="role")
    permissions = relationship(
        "Permission", back_populates="role", cascade="all, delete-orphan"
    )

    @property
    def is_global(self) -> bool:
        return self.organization_id is None
