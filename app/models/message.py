# app/models/message.py

import uuid
from sqlalchemy import Column, Text, ForeignKey, DateTime, CHAR, Boolean, Index
from sqlalchemy.orm import relationship
from app.core.database import Base, utc_now

# 已刪除訊息的顯示內容 (軟刪除，保留對話順序)
DELETED_MESSAGE_CONTENT = "[Message deleted]"

class Message(Base):
    """
    使用者之間的私訊 (一對一)，可選擇性關聯到某個案件
    """
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_sender_receiver", "sender_id", "receiver_id"),
    )

    message_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    # 案件刪除後訊息仍保留
    project_id = Column(CHAR(36), ForeignKey("projects.project_id", ondelete="SET NULL"), nullable=True, index=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now, index=True)

    sender = relationship("User", foreign_keys=[sender_id], lazy="selectin")
    receiver = relationship("User", foreign_keys=[receiver_id], lazy="selectin")
