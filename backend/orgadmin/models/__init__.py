"""Aggregate model imports for Alembic auto-detection."""

from orgadmin.models.user import User, UserRole, UserStatus  # noqa: F401
from orgadmin.models.organization import (  # noqa: F401
    Organization,
    OrganizationMember,
    OrganizationStatus,
)
from orgadmin.models.role import Role  # noqa: F401
from orgadmin.models.permission import (  # noqa: F401
    Action,
    Permission,
    PermissionAction,
    PermissionTarget,
    Resource,
)
from orgadmin.models.security_log import (  # noqa: F401
    SecurityLog,
    SecurityLogStatus,
    SecurityLogType,
)
