# app/schemas/project_schema.py
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from app.models.project import ProjectStatusEnum
from app.schemas.user_schema import UserBrief
from app.schemas.earnings_schema import EarningsOut


def _clean_skills(skills: List[str]) -> List[str]:
    # 去除空白與重複 (順序無意義，但保留第一次出現的順序方便前端顯示)
    cleaned = []
    for skill in skills:
        skill = skill.strip()
        if not skill:
            raise ValueError('技能標籤不可為空白')
        if skill not in cleaned:
            cleaned.append(skill)
    return cleaned


# 1. 基礎欄位 (對應 Model)
class ProjectBase(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=1000)
    min_budget: float = Field(..., gt=0)
    max_budget: float = Field(..., gt=0)
    duration: int = Field(..., ge=1, le=365, description="預計天數")
    skills: List[str] = Field(..., min_length=1)

# 2. 雇主刊登案件時的 Request Body (Input)
class ProjectCreate(ProjectBase):

    @field_validator('title', 'description')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator('skills')
    @classmethod
    def validate_skills(cls, v: List[str]) -> List[str]:
        return _clean_skills(v)

    @model_validator(mode='after')
    def check_budget_range(self):
        if self.max_budget < self.min_budget:
            raise ValueError('最高預算必須大於或等於最低預算')
        return self

# 3. 雇主更新案件時的 Request Body (Input)
# (所有欄位皆可選；狀態請改用 PATCH /projects/{id}/status)
class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=20, max_length=1000)
    min_budget: Optional[float] = Field(None, gt=0)
    max_budget: Optional[float] = Field(None, gt=0)
    duration: Optional[int] = Field(None, ge=1, le=365)
    skills: Optional[List[str]] = Field(None, min_length=1)

    @field_validator('skills')
    @classmethod
    def validate_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_skills(v) if v is not None else v

# 4. 狀態轉移 Request Body
class ProjectStatusUpdate(BaseModel):
    status: ProjectStatusEnum

# 5. 進度回報 Request Body
# (範圍檢查在 Service 層，超出範圍回傳 InvalidRange)
class ProjectProgressUpdate(BaseModel):
    progress: int

# 6. 回傳給前端的案件資料 (Output)
class ProjectOut(ProjectBase):
    model_config = ConfigDict(from_attributes=True)

    project_id: str
    client_id: str
    status: ProjectStatusEnum
    progress: int
    selected_freelancer_id: Optional[str] = None
    final_bid_amount: Optional[float] = None
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    bid_ids: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    client: Optional[UserBrief] = None
    selected_freelancer: Optional[UserBrief] = None

# 7. 分頁列表
class ProjectListOut(BaseModel):
    projects: List[ProjectOut]
    current_page: int
    total_pages: int
    total: int

# 8. 狀態轉移結果：主操作結果與收入紀錄 (附帶作業) 的結果分開呈現
class ProjectStatusChangeOut(BaseModel):
    project: ProjectOut
    earnings: Optional[EarningsOut] = None
    earnings_error: Optional[str] = None
