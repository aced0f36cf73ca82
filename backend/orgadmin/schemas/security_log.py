from datetime import datetime

from pydantic import BaseModel

from orgadmin.models.security_log import SecurityLogStatus, SecurityLogType


class SecurityLogOut(BaseModel):
    id: str
    user_id: str | None
    email: str
    ip_address: str
    user_agent: str
    status: SecurityLogStatus
    type: SecurityLogType
    message: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
