# app/routers/bid_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.security import get_current_user, require_roles
from app.models.user import User, UserRoleEnum
from app.services.bid_service import BidService
from app.schemas.bid_schema import (
    BidCreate, BidStatusUpdate, CounterOfferCreate, BidOut,
    BidOutWithFreelancer, BidOutWithProject, BidStatsOut, BidActionOut
)

router = APIRouter(
    prefix="/bids",
    tags=["Bids"],
    dependencies=[Depends(get_current_user)] # 重要：此 router 下所有 API 都需要登入
)

# -----------------------------------------------------------------
# 案件底下的出價 (/projects/{project_id}/bids)
# -----------------------------------------------------------------
project_bid_router = APIRouter(
    prefix="/projects",
    tags=["Bids"], # 歸類到同一個 Tag
    dependencies=[Depends(get_current_user)]
)

# 工作者的出價 (/freelancers/{freelancer_id}/bids)
freelancer_bid_router = APIRouter(
    prefix="/freelancers",
    tags=["Bids"],
    dependencies=[Depends(get_current_user)]
)

def get_bid_service(db: AsyncSession = Depends(get_db)) -> BidService:
    return BidService(db)


@project_bid_router.post(
    "/{project_id}/bids", 
    response_model=BidOut, 
    status_code=status.HTTP_201_CREATED
)
async def submit_bid(
    project_id: str,
    bid_data: BidCreate,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 對招募中的案件出價。
    """
    return await service.submit_bid(project_id, bid_data, current_user)

@project_bid_router.get("/{project_id}/bids", response_model=List[BidOutWithFreelancer])
async def list_project_bids(
    project_id: str,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(get_current_user)
):
    """
    (雇主) 檢視案件的所有出價 (新 -> 舊)。
    """
    return await service.list_project_bids(project_id, current_user)

@project_bid_router.get("/{project_id}/bids/stats", response_model=BidStatsOut)
async def get_project_bid_stats(
    project_id: str,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(get_current_user)
):
    return await service.get_bid_stats(project_id, current_user)

@freelancer_bid_router.get("/{freelancer_id}/bids", response_model=List[BidOutWithProject])
async def list_freelancer_bids(
    freelancer_id: str,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(get_current_user)
):
    """
    (工作者) 我的出價列表。
    """
    return await service.list_freelancer_bids(freelancer_id, current_user)

@router.put("/{bid_id}/status", response_model=BidActionOut)
async def update_bid_status(
    bid_id: str,
    status_data: BidStatusUpdate,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 接受或拒絕出價。

    接受後案件轉為 in-progress，並記錄得標者與成交金額。
    """
    bid = await service.update_bid_status(bid_id, status_data.status, current_user)
    return BidActionOut(message=f"Bid {bid.status.value} successfully", bid=BidOut.model_validate(bid))

@router.post("/{bid_id}/counter-offer", response_model=BidActionOut)
async def create_counter_offer(
    bid_id: str,
    offer: CounterOfferCreate,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 對出價提出還價。
    """
    bid = await service.create_counter_offer(bid_id, offer.amount, offer.message, current_user)
    return BidActionOut(message="Counter offer sent successfully", bid=BidOut.model_validate(bid))

@router.post("/{bid_id}/accept-counter", response_model=BidActionOut)
async def accept_counter_offer(
    bid_id: str,
    service: BidService = Depends(get_bid_service),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 接受雇主的還價，出價金額改為還價金額。
    """
    bid = await service.accept_counter_offer(bid_id, current_user)
    return BidActionOut(message="Counter offer accepted successfully", bid=BidOut.model_validate(bid))
