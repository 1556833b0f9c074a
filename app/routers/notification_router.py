# app/routers/notification_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.services.notification_service import NotificationService
from app.schemas.notification_schema import NotificationOut

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    dependencies=[Depends(get_current_user)]
)

def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)

@router.get("/my", response_model=List[NotificationOut])
async def list_my_notifications(
    unread_only: bool = False,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user)
):
    """
    最近 20 筆通知 (新 -> 舊)。
    新通知會即時推播到 /ws/notifications，這裡用於頁面載入時補齊。
    """
    return await service.get_my_notifications(current_user, unread_only=unread_only)

@router.patch("/read-all")
async def mark_all_notifications_read(
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user)
) -> Dict[str, int]:
    count = await service.mark_all_as_read(current_user)
    return {"updated_count": count}

@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
    current_user: User = Depends(get_current_user)
):
    """
    只能標記自己的通知；已讀的通知直接回傳。
    """
    return await service.mark_notification_as_read(notification_id, current_user)
