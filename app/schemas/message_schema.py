# app/schemas/message_schema.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional

from app.schemas.user_schema import UserBrief

class MessageCreate(BaseModel):
    """
    傳送私訊的 Request Body
    """
    receiver_id: str
    content: str = Field(..., min_length=1, max_length=2000)
    # 與案件相關的訊息可帶上案件 ID
    project_id: Optional[str] = None

    @field_validator('content')
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('訊息內容不可為空白')
        return v

class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: str
    sender_id: str
    receiver_id: str
    project_id: Optional[str] = None
    content: str
    is_read: bool
    created_at: datetime
    sender: Optional[UserBrief] = None
    receiver: Optional[UserBrief] = None

class ConversationPageOut(BaseModel):
    messages: List[MessageOut]
    current_page: int
    total_pages: int
    total: int

class LastMessageOut(BaseModel):
    content: str
    sender_id: str
    created_at: datetime

class ConversationOut(BaseModel):
    """對話列表的一列：對方、最後一則訊息、我的未讀數"""
    user_id: str
    user_name: str
    last_message: LastMessageOut
    unread_count: int
