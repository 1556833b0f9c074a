# app/services/bid_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.core.database import utc_now
from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.core.websocket_manager import manager, project_topic

from app.models.user import User, UserRoleEnum
from app.models.bid import Bid, BidStatusEnum
from app.models.project import Project, ProjectStatusEnum

from app.schemas.bid_schema import BidCreate, BidOut, BidStatsOut

from app.repositories.bid_repo import BidRepository
from app.repositories.project_repo import ProjectRepository
from app.services.notification_service import NotificationService
from app.utils.lifecycle import BID_DECISION_STATUSES, BID_FINAL_STATUSES

logger = logging.getLogger(__name__)

class BidService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.bid_repo = BidRepository(db)
        self.project_repo = ProjectRepository(db)
        self.notification_service = NotificationService(db)

    async def _get_bid(self, bid_id: str) -> Bid:
        bid = await self.bid_repo.get_bid_by_id(bid_id)
        if not bid:
            raise NotFoundError("出價不存在")
        return bid

    async def _get_project(self, project_id: str, for_update: bool = False) -> Project:
        project = await self.project_repo.get_project_by_id(project_id, for_update=for_update)
        if not project:
            raise NotFoundError("案件不存在")
        return project

    async def _publish_bid_event(self, bid: Bid, event_name: str, message: str) -> None:
        payload = {"bid": BidOut.model_validate(bid).model_dump(mode="json"), "message": message}
        await manager.publish(project_topic(bid.project_id), event_name, payload)

    async def submit_bid(self, project_id: str, bid_data: BidCreate, freelancer: User) -> Bid:
        """
        (工作者) 對 open 案件出價
        """
        # 1. 權限：只有工作者可以出價
        if freelancer.role != UserRoleEnum.freelancer:
            raise ForbiddenError("只有自由工作者可以出價")

        # 2. 案件必須存在且為 open
        project = await self._get_project(project_id, for_update=True)
        if project.status != ProjectStatusEnum.open:
            raise InvalidStateError("此案件已不再接受出價")

        # 3. 建立出價
        new_bid = Bid(
            project_id=project_id,
            freelancer_id=freelancer.user_id,
            amount=bid_data.amount,
            proposal=bid_data.proposal,
            delivery_time=bid_data.delivery_time,
            status=BidStatusEnum.pending,
        )
        await self.bid_repo.create_bid(new_bid)

        # 4. (輔助) 更新案件的出價 ID 列表
        # JSON 欄位需重新指派才會被偵測到變更
        project.bid_ids = [*(project.bid_ids or []), new_bid.bid_id]
        await self.project_repo.update_project(project)

        # 5. 通知雇主
        await self.notification_service.create_notification(
            user_id=project.client_id,
            title=f"新的出價：{project.title[:20]}",
            message=f"{freelancer.name} 對您的案件出價 {bid_data.amount:,.0f}",
            link_url=f"/projects/{project_id}/bids",
        )

        await self.db.commit()
        logger.info(f"Bid {new_bid.bid_id} submitted on project {project_id} by {freelancer.user_id}")

        # 6. commit 之後才推播
        await self.notification_service.dispatch_pending()
        await self._publish_bid_event(new_bid, "bid_received", "New bid received")
        return new_bid

    async def list_project_bids(self, project_id: str, user: User) -> List[Bid]:
        """
        (雇主) 檢視案件的所有出價 (新 -> 舊)
        """
        project = await self._get_project(project_id)
        if project.client_id != user.user_id and user.role != UserRoleEnum.admin:
            raise ForbiddenError("你無權查看此案件的出價")
        return await self.bid_repo.get_bids_by_project_id(project_id)

    async def list_freelancer_bids(self, freelancer_id: str, user: User) -> List[Bid]:
        """
        (工作者) 檢視自己的出價；管理員可查看任何人
        """
        if freelancer_id != user.user_id and user.role != UserRoleEnum.admin:
            raise ForbiddenError("你無權查看他人的出價")
        return await self.bid_repo.get_bids_by_freelancer_id(freelancer_id)

    async def get_bid_stats(self, project_id: str, user: User) -> BidStatsOut:
        """
        案件出價統計：數量、金額 (平均/最低/最高)、平均交付天數、狀態分布、交付天數區間
        """
        project = await self._get_project(project_id)
        if project.client_id != user.user_id and user.role != UserRoleEnum.admin:
            raise ForbiddenError("你無權查看此案件的出價統計")

        basic_stats = await self.bid_repo.get_basic_stats(project_id)
        status_distribution = await self.bid_repo.get_status_distribution(project_id)
        delivery_time_ranges = await self.bid_repo.get_delivery_time_ranges(project_id)
        return BidStatsOut(
            basic_stats=basic_stats,
            status_distribution=status_distribution,
            delivery_time_ranges=delivery_time_ranges,
        )

    async def update_bid_status(self, bid_id: str, new_status: BidStatusEnum, user: User) -> Bid:
        """
        (雇主) 接受或拒絕出價

        - 接受：出價需為 pending 且案件為 open，同一交易中寫入
          selected_freelancer_id / final_bid_amount / start_date，案件轉為 in-progress
        - 拒絕：清除還價
        """
        bid = await self._get_bid(bid_id)
        # (重要) 鎖定案件列，兩個同時的「接受」會在這裡排隊
        project = await self._get_project(bid.project_id, for_update=True)
        if project.client_id != user.user_id:
            raise ForbiddenError("你無權處理此出價")

        new_status = BidStatusEnum(new_status)
        if new_status not in BID_DECISION_STATUSES:
            raise InvalidStateError("出價狀態只能更新為 accepted 或 rejected")

        # 鎖定後重新讀取出價，避免使用過期的狀態
        bid = await self._get_bid(bid_id)
        if bid.status in BID_FINAL_STATUSES:
            raise InvalidStateError("此出價已被處理")

        if new_status == BidStatusEnum.accepted:
            if bid.status != BidStatusEnum.pending:
                raise InvalidStateError("只能接受 pending 狀態的出價")
            if project.status != ProjectStatusEnum.open:
                raise InvalidStateError("案件已不再接受出價")

            bid.status = BidStatusEnum.accepted
            project.selected_freelancer_id = bid.freelancer_id
            project.final_bid_amount = bid.amount
            project.status = ProjectStatusEnum.in_progress
            project.start_date = utc_now()
            await self.project_repo.update_project(project)

            await self.notification_service.create_from_template(
                user_id=bid.freelancer_id,
                category="project",
                template_type="awarded",
                replacements={"projectName": project.title},
                link_url=f"/projects/{project.project_id}",
            )
        else:
            bid.status = BidStatusEnum.rejected
            bid.clear_counter_offer()
            await self.notification_service.create_notification(
                user_id=bid.freelancer_id,
                title=f"出價未獲採用：{project.title[:20]}",
                message="雇主已拒絕您的出價。",
                link_url=f"/projects/{project.project_id}",
            )

        await self.bid_repo.update_bid(bid)
        await self.db.commit()
        logger.info(f"Bid {bid_id} {new_status.value} on project {project.project_id}")

        await self.notification_service.dispatch_pending()
        await self._publish_bid_event(bid, "bid_status_updated", f"Bid {new_status.value}")
        return bid

    async def create_counter_offer(self, bid_id: str, amount: float, message: str, user: User) -> Bid:
        """
        (雇主) 對出價還價，出價狀態轉為 countered
        """
        bid = await self._get_bid(bid_id)
        project = await self._get_project(bid.project_id)
        if project.client_id != user.user_id:
            raise ForbiddenError("你無權對此出價還價")
        if bid.status in BID_FINAL_STATUSES:
            raise InvalidStateError("此出價已被處理，無法還價")

        bid.set_counter_offer(amount, message)
        await self.bid_repo.update_bid(bid)

        await self.notification_service.create_notification(
            user_id=bid.freelancer_id,
            title=f"收到還價：{project.title[:20]}",
            message=f"雇主提出還價 {amount:,.0f}：{message}",
            link_url=f"/freelancers/{bid.freelancer_id}/bids",
        )

        await self.db.commit()
        await self.notification_service.dispatch_pending()
        await self._publish_bid_event(bid, "counter_offer_created", "Counter offer received")
        return bid

    async def accept_counter_offer(self, bid_id: str, user: User) -> Bid:
        """
        (工作者) 接受還價：還價金額寫回出價金額，清除還價，狀態回到 pending
        """
        bid = await self._get_bid(bid_id)
        if bid.freelancer_id != user.user_id:
            raise ForbiddenError("你無權接受此還價")
        if bid.status != BidStatusEnum.countered or bid.counter_offer_amount is None:
            raise InvalidStateError("此出價沒有待處理的還價")

        bid.amount = bid.counter_offer_amount
        bid.clear_counter_offer()
        bid.status = BidStatusEnum.pending
        await self.bid_repo.update_bid(bid)
        await self.db.commit()
        logger.info(f"Counter offer accepted on bid {bid_id}")

        await self._publish_bid_event(bid, "counter_offer_accepted", "Counter offer accepted")
        return bid
