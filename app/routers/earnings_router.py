# app/routers/earnings_router.py

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Literal, Optional

from app.core.database import get_db
from app.core.security import require_roles
from app.models.user import User, UserRoleEnum
from app.services.earnings_service import EarningsService
from app.schemas.earnings_schema import EarningsListOut, EarningsSyncOut

router = APIRouter(
    prefix="/freelancers/earnings",
    tags=["Earnings"],
)

Period = Literal["week", "month", "year", "all"]
StatusFilter = Literal["pending", "completed", "all"]

@router.get("", response_model=EarningsListOut)
async def get_my_earnings(
    period: Optional[Period] = None,
    status: Optional[StatusFilter] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 收入紀錄與總額，可依期間 (week / month / year / all) 與狀態篩選。
    """
    service = EarningsService(db)
    earnings = await service.list_earnings(current_user, period=period, status=status)
    total_amount = sum(item.amount for item in earnings)
    message = "Earnings retrieved successfully" if earnings else "No earnings found"
    return EarningsListOut(data=earnings, total_amount=total_amount, message=message)

@router.get("/export")
async def export_my_earnings(
    period: Optional[Period] = None,
    status: Optional[StatusFilter] = None,
    export_format: Literal["csv", "json"] = Query("json", alias="format"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 匯出收入紀錄 (CSV 或 JSON 下載)。
    """
    service = EarningsService(db)
    content, media_type, filename = await service.export_earnings(
        current_user, period=period, status=status, export_format=export_format
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.post("/sync", response_model=EarningsSyncOut)
async def sync_my_earnings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 補上缺少的收入紀錄 (已完成或進度 100% 的得標案件)。
    重複呼叫不會產生重複資料。
    """
    service = EarningsService(db)
    count = await service.sync_missing_earnings(current_user)
    return EarningsSyncOut(
        message=f"Synced earnings: {count} new records created",
        new_records_count=count,
    )
