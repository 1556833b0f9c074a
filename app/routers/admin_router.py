# app/routers/admin_router.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from app.core.database import get_db
from app.core.security import require_roles
from app.models.user import User, UserRoleEnum
from app.services.earnings_service import EarningsService
from app.services.notification_service import NotificationService
from app.services.user_service import UserService
from app.schemas.earnings_schema import EarningsFixOut
from app.schemas.notification_schema import NotificationOut, TemplateNotificationCreate, TemplateUpdate
from app.schemas.user_schema import AdminUserUpdate, UserListOut, UserOut, UserStatsOut

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    # (重要) 整個路由都僅限管理員
    dependencies=[Depends(require_roles(UserRoleEnum.admin))]
)

@router.get("/notification-templates")
async def get_notification_templates(db: AsyncSession = Depends(get_db)) -> Dict[str, Dict[str, Dict[str, str]]]:
    """
    取得所有通知範本 (category -> type -> channel)。
    """
    return NotificationService(db).list_templates()

@router.put("/notification-templates")
async def update_notification_template(
    data: TemplateUpdate,
    db: AsyncSession = Depends(get_db)
) -> Dict[str, str]:
    """
    更新單一範本的某個通道 (email / sms)。
    """
    service = NotificationService(db)
    return service.update_template(data.category, data.type, data.channel, data.template)

@router.post(
    "/notifications/send",
    response_model=NotificationOut,
    status_code=status.HTTP_201_CREATED
)
async def send_template_notification(
    data: TemplateNotificationCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    以範本產生站內通知並推播給指定使用者。
    """
    service = NotificationService(db)
    return await service.send_template_notification(data)

@router.post("/earnings/fix-pending", response_model=EarningsFixOut)
async def fix_pending_earnings(db: AsyncSession = Depends(get_db)):
    """
    將「案件已完成但收入仍為 pending」的紀錄改為 completed。
    """
    service = EarningsService(db)
    count = await service.fix_pending_earnings()
    return EarningsFixOut(message=f"Updated {count} pending earnings records", updated_count=count)

# --- 使用者管理 ---

@router.get("/users", response_model=UserListOut)
async def list_users(
    role: Optional[UserRoleEnum] = None,
    search: Optional[str] = Query(None, description="名稱或 Email 關鍵字"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    users, total, total_pages = await UserService(db).list_users(role=role, search=search, page=page, limit=limit)
    return UserListOut(users=users, current_page=page, total_pages=total_pages, total=total)

@router.get("/users/stats", response_model=UserStatsOut)
async def get_user_stats(db: AsyncSession = Depends(get_db)):
    """
    各角色人數、近 30 天新使用者、啟用 / 停權人數。
    """
    return await UserService(db).get_user_stats()

@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    return await UserService(db).get_user(user_id)

@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: User = Depends(require_roles(UserRoleEnum.admin)),
    db: AsyncSession = Depends(get_db)
):
    """
    更新使用者資料；is_active=false 停權後，該帳號的 Token 立即失效 (401)。
    """
    return await UserService(db).update_user(user_id, data, admin)
