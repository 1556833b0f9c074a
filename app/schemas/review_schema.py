# app/schemas/review_schema.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import List, Optional
from app.schemas.user_schema import UserBrief


class ReviewCreate(BaseModel):
    project_id: str
    freelancer_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=3, max_length=500)
    is_public: bool = True


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=3, max_length=500)
    is_public: Optional[bool] = None


class FreelancerResponseCreate(BaseModel):
    response: str = Field(..., min_length=3, max_length=500)


class RatingStats(BaseModel):
    average_rating: float = 0
    total_reviews: int = 0


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: str
    project_id: str
    client_id: str
    freelancer_id: str
    rating: int
    comment: str
    freelancer_response: Optional[str] = None
    is_public: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewOutWithClient(ReviewOut):
    client: Optional[UserBrief] = None


class ReviewWithStatsOut(BaseModel):
    review: ReviewOut
    average_rating: RatingStats


class FreelancerReviewsOut(BaseModel):
    reviews: List[ReviewOutWithClient]
    stats: RatingStats
