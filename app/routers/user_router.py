# app/routers/user_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.security import get_current_user
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user_schema import UserBrief, UserOut

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(get_current_user)] # (重要) 整個路由都需要登入
)

@router.get("/me", response_model=UserOut)
async def read_users_me(
    current_user: User = Depends(get_current_user)
):
    """
    獲取當前登入使用者的基本資料 (不含密碼)
    """
    return current_user

@router.get("/{user_id}", response_model=UserBrief)
async def read_user_brief(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    其他使用者的公開資訊 (僅名稱)，用於案件 / 評價頁面
    """
    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise NotFoundError("使用者不存在")
    return user
