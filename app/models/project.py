# models/project.py
import enum
import uuid
from sqlalchemy import (
    Column, String, TEXT, INT, Float, DateTime, ForeignKey, Enum, CHAR, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.core.database import Base, utc_now

# 案件狀態
class ProjectStatusEnum(str, enum.Enum):
    open = "open"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"

class Project(Base):
    # 告訴 SQLAlchemy，這個類別對應到資料庫中名為 projects 的表格 (table)
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress_range"),
    )

    project_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # 加上 index=True 提升 FK 查詢效能
    client_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(TEXT, nullable=False)
    min_budget = Column(Float, nullable=False)
    max_budget = Column(Float, nullable=False)
    duration = Column(INT, nullable=False) # 天數
    # 技能標籤 (順序無意義)
    skills = Column(JSON, nullable=False, default=list)
    status = Column(
        Enum(ProjectStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="project_status_enum"),
        default=ProjectStatusEnum.open,
        nullable=False,
        index=True,
    )
    progress = Column(INT, default=0, nullable=False)

    # --- 接受出價時一次寫入 ---
    selected_freelancer_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True)
    final_bid_amount = Column(Float, nullable=True)
    start_date = Column(DateTime, nullable=True)
    completion_date = Column(DateTime, nullable=True)

    # (輔助) 出價 ID 列表，權威來源是 bids.project_id
    bid_ids = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # 關聯回 User (雇主)
    client = relationship("User", foreign_keys=[client_id])

    # 關聯回 User (得標的工作者)
    selected_freelancer = relationship("User", foreign_keys=[selected_freelancer_id])
