# app/routers/review_router.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.core.security import get_current_user, require_roles
from app.models.user import User, UserRoleEnum
from app.services.review_service import ReviewService
from app.schemas.review_schema import (
    ReviewCreate, ReviewUpdate, FreelancerResponseCreate, ReviewOut,
    ReviewOutWithClient, ReviewWithStatsOut, FreelancerReviewsOut, RatingStats
)

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    dependencies=[Depends(get_current_user)]
)

@router.post("/create", response_model=ReviewWithStatsOut, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 評價已完成案件的得標工作者 (每個案件一次)。
    """
    service = ReviewService(db)
    review, stats = await service.create_review(review_data, current_user)
    return ReviewWithStatsOut(review=ReviewOut.model_validate(review), average_rating=stats)

@router.get("/freelancers/{freelancer_id}", response_model=FreelancerReviewsOut)
async def get_freelancer_reviews(
    freelancer_id: str,
    rating: Optional[int] = Query(None, ge=1, le=5),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = ReviewService(db)
    reviews, stats = await service.list_freelancer_reviews(freelancer_id, current_user, rating=rating)
    return FreelancerReviewsOut(reviews=reviews, stats=stats)

@router.get("/projects/{project_id}", response_model=List[ReviewOutWithClient])
async def get_project_reviews(
    project_id: str,
    db: AsyncSession = Depends(get_db)
):
    service = ReviewService(db)
    return await service.list_project_reviews(project_id)

@router.post("/{review_id}/response", response_model=ReviewOut)
async def respond_to_review(
    review_id: str,
    response_data: FreelancerResponseCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (工作者) 回覆收到的評價。
    """
    service = ReviewService(db)
    return await service.respond_to_review(review_id, response_data.response, current_user)

@router.put("/{review_id}", response_model=ReviewWithStatsOut)
async def update_review(
    review_id: str,
    review_data: ReviewUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    service = ReviewService(db)
    review, stats = await service.update_review(review_id, review_data, current_user)
    return ReviewWithStatsOut(review=ReviewOut.model_validate(review), average_rating=stats)

@router.delete("/{review_id}", response_model=RatingStats)
async def delete_review(
    review_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    刪除評價 (撰寫的雇主或管理員)，回傳工作者更新後的平均評分。
    """
    service = ReviewService(db)
    return await service.delete_review(review_id, current_user)
