# app/services/review_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
import logging

from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.models.user import User, UserRoleEnum
from app.models.project import ProjectStatusEnum
from app.models.review import Review
from app.schemas.review_schema import RatingStats, ReviewCreate, ReviewUpdate
from app.repositories.project_repo import ProjectRepository
from app.repositories.review_repo import ReviewRepository
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.review_repo = ReviewRepository(db)
        self.project_repo = ProjectRepository(db)
        self.notification_service = NotificationService(db)

    async def _get_review(self, review_id: str) -> Review:
        review = await self.review_repo.get_review_by_id(review_id)
        if not review:
            raise NotFoundError("評價不存在")
        return review

    async def get_rating_stats(self, freelancer_id: str) -> RatingStats:
        stats = await self.review_repo.get_rating_stats(freelancer_id)
        return RatingStats(**stats)

    async def create_review(self, data: ReviewCreate, client: User) -> Tuple[Review, RatingStats]:
        """
        (雇主) 對已完成的案件評價得標工作者，每個案件只能評價一次
        回傳 (評價, 工作者最新的平均評分)
        """
        # 1. 案件必須存在、屬於此雇主、且已完成
        project = await self.project_repo.get_project_by_id(data.project_id)
        if not project:
            raise NotFoundError("案件不存在")
        if project.client_id != client.user_id:
            raise ForbiddenError("你只能評價自己的案件")
        if project.status != ProjectStatusEnum.completed:
            raise InvalidStateError("只能評價已完成的案件")

        # 2. 被評價者必須是得標工作者
        if project.selected_freelancer_id != data.freelancer_id:
            raise InvalidStateError("只能評價此案件的得標工作者")

        # 3. 不可重複評價
        existing = await self.review_repo.find_by_project_and_client(data.project_id, client.user_id)
        if existing:
            raise InvalidStateError("你已經評價過此案件")

        review = Review(
            project_id=data.project_id,
            client_id=client.user_id,
            freelancer_id=data.freelancer_id,
            rating=data.rating,
            comment=data.comment.strip(),
            is_public=data.is_public,
        )
        await self.review_repo.create_review(review)

        await self.notification_service.create_notification(
            user_id=data.freelancer_id,
            title=f"您收到了新的評價 ({data.rating} 星)",
            message=review.comment,
            link_url=f"/reviews/freelancers/{data.freelancer_id}",
        )
        await self.db.commit()
        await self.notification_service.dispatch_pending()

        stats = await self.get_rating_stats(data.freelancer_id)
        logger.info(f"Review {review.review_id} created for freelancer {data.freelancer_id}")
        return review, stats

    async def list_freelancer_reviews(
        self,
        freelancer_id: str,
        user: User,
        rating: Optional[int] = None,
    ) -> Tuple[List[Review], RatingStats]:
        """
        工作者的評價列表；本人與管理員可以看到非公開評價
        """
        public_only = not (user.user_id == freelancer_id or user.role == UserRoleEnum.admin)
        reviews = await self.review_repo.list_by_freelancer(freelancer_id, public_only=public_only, rating=rating)
        stats = await self.get_rating_stats(freelancer_id)
        return reviews, stats

    async def list_project_reviews(self, project_id: str) -> List[Review]:
        project = await self.project_repo.get_project_by_id(project_id)
        if not project:
            raise NotFoundError("案件不存在")
        return await self.review_repo.list_by_project(project_id)

    async def respond_to_review(self, review_id: str, response: str, freelancer: User) -> Review:
        """
        (工作者) 回覆自己收到的評價
        """
        review = await self._get_review(review_id)
        if review.freelancer_id != freelancer.user_id:
            raise ForbiddenError("你只能回覆自己收到的評價")

        review.freelancer_response = response.strip()
        await self.review_repo.update_review(review)
        await self.db.commit()
        return review

    async def update_review(self, review_id: str, data: ReviewUpdate, client: User) -> Tuple[Review, RatingStats]:
        """
        (雇主) 修改自己寫的評價
        """
        review = await self._get_review(review_id)
        if review.client_id != client.user_id:
            raise ForbiddenError("你只能修改自己的評價")

        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(review, key, value)

        await self.review_repo.update_review(review)
        await self.db.commit()
        stats = await self.get_rating_stats(review.freelancer_id)
        return review, stats

    async def delete_review(self, review_id: str, user: User) -> RatingStats:
        """
        刪除評價 (撰寫的雇主或管理員)，回傳工作者更新後的平均評分
        """
        review = await self._get_review(review_id)
        if review.client_id != user.user_id and user.role != UserRoleEnum.admin:
            raise ForbiddenError("你無權刪除此評價")

        freelancer_id = review.freelancer_id
        await self.review_repo.delete_review(review)
        await self.db.commit()
        logger.info(f"Review {review_id} deleted by {user.user_id}")
        return await self.get_rating_stats(freelancer_id)
