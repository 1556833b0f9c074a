# app/schemas/user_schema.py
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
import re
from datetime import datetime
from typing import Dict, List, Optional
from app.models.user import UserRoleEnum

# Token 回應的格式
class Token(BaseModel):
    access_token: str
    token_type: str

# Token 內的資料
class TokenData(BaseModel):
    user_id: str
    role: str


# 1. 註冊請求 Body
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    # 密碼要求英數混合
    password: str = Field(..., min_length=8)
    role: UserRoleEnum

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """
        驗證密碼是否至少8碼且包含英文和數字
        """
        if not re.search(r'(?=.*[a-zA-Z])(?=.*[0-9])', v):
            raise ValueError('密碼必須包含英文和數字')
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: UserRoleEnum) -> UserRoleEnum:
        # 管理員帳號不開放自行註冊
        if v == UserRoleEnum.admin:
            raise ValueError('無法註冊管理員帳號')
        return v

# 2. 註冊/查詢使用者的安全回應
class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str
    email: EmailStr
    role: UserRoleEnum
    is_active: bool
    created_at: Optional[datetime] = None

# 3. 巢狀顯示用的精簡使用者資訊 (雇主、工作者)
class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    name: str

# 4. (管理員) 更新使用者：只更新有帶的欄位，is_active=False 即停權
class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRoleEnum] = None
    is_active: Optional[bool] = None

# 5. (管理員) 使用者分頁列表
class UserListOut(BaseModel):
    users: List[UserOut]
    current_page: int
    total_pages: int
    total: int

# 6. (管理員) 使用者統計
class UserStatsOut(BaseModel):
    users_by_role: Dict[str, int]
    new_users: int
    active_users: int
    inactive_users: int
