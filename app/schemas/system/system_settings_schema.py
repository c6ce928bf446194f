from typing import Optional
from pydantic import BaseModel, ConfigDict


class SystemSettingsSnapshot(BaseModel):
    """Settings read once per unit of work and passed to permission checks."""
    model_config = ConfigDict(frozen=True)

    global_employment_info_lock: bool = False
    strict_status_permissions: bool = False


class PermissionDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None
