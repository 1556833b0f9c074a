# app/models/earnings.py
import enum
import uuid
from sqlalchemy import Column, Float, DateTime, ForeignKey, Enum, CHAR, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base, utc_now

class EarningsStatusEnum(str, enum.Enum):
    pending = "pending"
    completed = "completed"

class Earnings(Base):
    __tablename__ = "earnings"
    # 每個 (案件, 工作者) 最多一筆收入紀錄
    __table_args__ = (
        UniqueConstraint("project_id", "freelancer_id", name="uq_earnings_project_freelancer"),
    )

    earnings_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    freelancer_id = Column(CHAR(36), ForeignKey("users.user_id"), nullable=False, index=True)
    # 只保留案件 ID (不設外鍵)：案件刪除後收入紀錄仍保留
    project_id = Column(CHAR(36), nullable=False, index=True)
    client_id = Column(CHAR(36), ForeignKey("users.user_id"), nullable=False)

    amount = Column(Float, nullable=False)
    status = Column(
        Enum(EarningsStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="earnings_status_enum"),
        default=EarningsStatusEnum.completed,
        nullable=False,
    )
    # 入帳日期
    date = Column(DateTime, default=utc_now, nullable=False, index=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # 案件可能已被刪除，此時 project 為 None
    project = relationship(
        "Project",
        primaryjoin="foreign(Earnings.project_id) == Project.project_id",
        viewonly=True,
    )
    client = relationship("User", foreign_keys=[client_id])
