from sqlalchemy import Column, Integer, String, Text, Enum as SQLEnum
from app.db.base import BaseModel
from app.models.shared.enums import SettingDataType

class SystemSetting(BaseModel):
    __tablename__ = 'system_settings'

    category = Column(String(50), nullable=False, default="GENERAL")  # GENERAL, HR, WORKFLOW
    setting_key = Column(String(100), nullable=False, unique=True)
    setting_value = Column(Text)
    data_type = Column(SQLEnum(SettingDataType, name="setting_data_type"), default=SettingDataType.STRING)
    description = Column(Text)
    updated_by = Column(Integer)  # User ID
