# app/schemas/bid_schema.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Dict, List, Optional
from app.models.bid import BidStatusEnum
from app.models.project import ProjectStatusEnum
from app.schemas.user_schema import UserBrief

# --- 建立 (Create) ---
class BidCreate(BaseModel):
    # project_id 和 freelancer_id 將從 URL 和 Token 中取得
    amount: float = Field(..., gt=0)
    proposal: str = Field(..., min_length=50, max_length=1000)
    delivery_time: int = Field(..., ge=1, le=365, description="交付天數")

    @field_validator('proposal')
    @classmethod
    def strip_proposal(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 50:
            raise ValueError('提案內容需介於 50 到 1000 字之間')
        return v

# --- 雇主接受 / 拒絕 ---
class BidStatusUpdate(BaseModel):
    status: BidStatusEnum # 只接受 "accepted" 或 "rejected"，由 Service 層檢查

# --- 雇主還價 ---
class CounterOfferCreate(BaseModel):
    amount: float = Field(..., gt=0)
    message: str = Field(..., min_length=10, max_length=500)

class CounterOfferOut(BaseModel):
    amount: float
    message: Optional[str] = None
    timestamp: Optional[datetime] = None

# --- 讀取 (Read / Out) ---
class BidOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bid_id: str
    project_id: str
    freelancer_id: str
    amount: float
    proposal: str
    delivery_time: int
    status: BidStatusEnum
    counter_offer: Optional[CounterOfferOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# 雇主檢視案件出價列表用 (含出價者資訊)
class BidOutWithFreelancer(BidOut):
    freelancer: Optional[UserBrief] = None

# 工作者檢視「我的出價」用 (含案件摘要)
class BidProjectSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    title: str
    status: ProjectStatusEnum
    client_id: str
    min_budget: float
    max_budget: float
    duration: int

class BidOutWithProject(BidOut):
    project: Optional[BidProjectSummary] = None

# --- 出價統計 ---
class BidBasicStats(BaseModel):
    total_bids: int = 0
    average_amount: float = 0
    min_amount: float = 0
    max_amount: float = 0
    average_delivery_time: float = 0

class BidStatsOut(BaseModel):
    basic_stats: BidBasicStats
    status_distribution: Dict[str, int]
    # 交付天數區間 -> 出價數量 (例如 "0-7": 3)
    delivery_time_ranges: Dict[str, int]

# --- 操作結果 ---
class BidActionOut(BaseModel):
    message: str
    bid: BidOut
