# app/repositories/review_repo.py

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import Dict, List, Optional

from app.models.review import Review


class ReviewRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_review(self, review: Review) -> Review:
        self.db.add(review)
        await self.db.flush()
        return review

    async def get_review_by_id(self, review_id: str) -> Optional[Review]:
        stmt = select(Review).where(Review.review_id == review_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_by_project_and_client(self, project_id: str, client_id: str) -> Optional[Review]:
        """
        檢查雇主是否已評價過此案件
        """
        stmt = select(Review).where(
            Review.project_id == project_id,
            Review.client_id == client_id,
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_by_freelancer(
        self,
        freelancer_id: str,
        public_only: bool = True,
        rating: Optional[int] = None,
    ) -> List[Review]:
        stmt = select(Review).where(Review.freelancer_id == freelancer_id)
        if public_only:
            stmt = stmt.where(Review.is_public.is_(True))
        if rating is not None:
            stmt = stmt.where(Review.rating == rating)
        stmt = stmt.options(selectinload(Review.client)).order_by(Review.created_at.desc())
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_by_project(self, project_id: str) -> List[Review]:
        stmt = (
            select(Review)
            .where(Review.project_id == project_id)
            .options(selectinload(Review.client))
            .order_by(Review.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def update_review(self, review: Review) -> Review:
        await self.db.flush()
        return review

    async def delete_review(self, review: Review) -> None:
        await self.db.delete(review)
        await self.db.flush()

    async def get_rating_stats(self, freelancer_id: str) -> Dict[str, float]:
        """
        工作者的平均評分與評價數 (GROUP BY 聚合)
        """
        stmt = (
            select(func.avg(Review.rating), func.count(Review.review_id))
            .where(Review.freelancer_id == freelancer_id)
            .group_by(Review.freelancer_id)
        )
        row = (await self.db.execute(stmt)).first()
        if row is None:
            return {"average_rating": 0.0, "total_reviews": 0}
        average, total = row
        return {"average_rating": float(average), "total_reviews": total}
