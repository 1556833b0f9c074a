# app/schemas/notification_schema.py

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, Optional

class NotificationOut(BaseModel):
    """
    用於 API 回傳的通知格式
    """
    model_config = ConfigDict(from_attributes=True)

    notification_id: str
    user_id: str
    title: str
    message: Optional[str] = None
    link_url: Optional[str] = None
    is_read: bool
    created_at: datetime


class TemplateUpdate(BaseModel):
    """(管理員) 更新通知範本"""
    category: str
    type: str
    channel: str
    template: str = Field(..., min_length=1)


class TemplateNotificationCreate(BaseModel):
    """(管理員) 以範本發送站內通知給指定使用者"""
    user_id: str
    category: str
    type: str
    replacements: Dict[str, str] = {}
    link_url: Optional[str] = None
