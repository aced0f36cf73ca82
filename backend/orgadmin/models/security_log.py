"""SecurityLog: append-only audit trail of authentication events.

Rows are written for login success/failure, logout, token refresh and
self-registration. Grant contents are never recorded here.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgadmin.database import Base
from orgadmin.models.user import _utcnow


class SecurityLogStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class SecurityLogType(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REFRESH = "REFRESH"
    REGISTER = "REGISTER"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


class SecurityLog(Base):
    __tablename__ = "security_logs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Who ────────────────────────────────────────────────────
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    user_agent: Mapped[str] = mapped_column(String(500), nullable=False)

    # ── What ───────────────────────────────────────────────────
    status: Mapped[SecurityLogStatus] = mapped_column(SAEnum(SecurityLogStatus), nullable=False)
    type: Mapped[SecurityLogType] = mapped_column(SAEnum(SecurityLogType), nullable=False, index=True)
    message: Mapped[str | None] = mapped_column(Text)

    # ── Timestamp ──────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )

    user = relationship("User")
