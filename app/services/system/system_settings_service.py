import json
import logging
from typing import Any, Dict, Optional
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.config import settings
from app.core.exceptions import InternalServiceError
from app.models.shared.enums import SettingDataType
from app.models.system.system_setting import SystemSetting
from app.schemas.system.system_settings_schema import SystemSettingsSnapshot

logger = logging.getLogger(__name__)

GLOBAL_EMPLOYMENT_INFO_LOCK = "global_employment_info_lock"
STRICT_STATUS_PERMISSIONS = "strict_status_permissions"


def _coerce(value: Optional[str], data_type: SettingDataType) -> Any:
    if value is None:
        return None
    if data_type == SettingDataType.BOOLEAN:
        return value.strip().lower() in ("1", "true", "yes", "on")
    if data_type == SettingDataType.INTEGER:
        return int(value)
    if data_type == SettingDataType.JSON:
        return json.loads(value)
    return value


class SystemSettingsService:
    """Key/value settings stored in the database, read as one snapshot per unit of work"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_rows(self) -> Dict[str, SystemSetting]:
        result = await self.session.execute(
            select(SystemSetting).where(SystemSetting.is_deleted == False)
        )
        return {row.setting_key: row for row in result.scalars().all()}

    async def get_snapshot(self) -> SystemSettingsSnapshot:
        """Read the workflow related settings once; missing rows use the env defaults"""
        rows = await self._get_rows()

        def _value(key: str, default: bool) -> bool:
            row = rows.get(key)
            if row is None or row.setting_value is None:
                return default
            return bool(_coerce(row.setting_value, row.data_type or SettingDataType.STRING))

        return SystemSettingsSnapshot(
            global_employment_info_lock=_value(GLOBAL_EMPLOYMENT_INFO_LOCK, settings.GLOBAL_EMPLOYMENT_INFO_LOCK),
            strict_status_permissions=_value(STRICT_STATUS_PERMISSIONS, settings.STRICT_STATUS_PERMISSIONS),
        )

    async def set_value(self, key: str, value: Any, data_type: SettingDataType, actor_id: Optional[int] = None,
                        category: str = "WORKFLOW") -> SystemSetting:
        try:
            if data_type == SettingDataType.JSON:
                stored = json.dumps(value)
            elif data_type == SettingDataType.BOOLEAN:
                stored = "true" if value else "false"
            else:
                stored = str(value)

            rows = await self._get_rows()
            row = rows.get(key)
            if row is None:
                row = SystemSetting(
                    category=category,
                    setting_key=key,
                    data_type=data_type,
                    created_by=actor_id,
                )
                self.session.add(row)

            row.setting_value = stored
            row.updated_by = actor_id
            await self.session.commit()

            logger.info(f"System setting {key} set to {stored} by user {actor_id}")
            return row

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error saving system setting {key}: {str(e)}")
            raise InternalServiceError("Error saving system setting")

    async def set_global_employment_info_lock(self, enabled: bool, actor_id: Optional[int] = None) -> SystemSettingsSnapshot:
        await self.set_value(GLOBAL_EMPLOYMENT_INFO_LOCK, enabled, SettingDataType.BOOLEAN, actor_id, category="HR")
        return await self.get_snapshot()

    async def set_strict_status_permissions(self, enabled: bool, actor_id: Optional[int] = None) -> SystemSettingsSnapshot:
        await self.set_value(STRICT_STATUS_PERMISSIONS, enabled, SettingDataType.BOOLEAN, actor_id)
        return await self.get_snapshot()
