# app/schemas/earnings_schema.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional
from app.models.earnings import EarningsStatusEnum
from app.schemas.user_schema import UserBrief


class EarningsProjectSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    title: str


class EarningsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    earnings_id: str
    freelancer_id: str
    project_id: str
    client_id: str
    amount: float
    status: EarningsStatusEnum
    date: datetime


class EarningsOutWithProject(EarningsOut):
    project: Optional[EarningsProjectSummary] = None


# 匯出 (JSON) 用：附上案件標題與雇主名稱
class EarningsExportOut(EarningsOutWithProject):
    client: Optional[UserBrief] = None


class EarningsListOut(BaseModel):
    data: List[EarningsOutWithProject]
    total_amount: float
    message: str


class EarningsSyncOut(BaseModel):
    message: str
    new_records_count: int


class EarningsFixOut(BaseModel):
    message: str
    updated_count: int
