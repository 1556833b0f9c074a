# app/services/project_service.py
import logging
import math
from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple

# 匯入 Core
from app.core.database import utc_now
from app.core.exceptions import (
    ForbiddenError, InvalidRangeError, InvalidStateError, InvalidTransitionError, NotFoundError
)
from app.core.websocket_manager import manager, project_topic

# 匯入 Models
from app.models.user import User, UserRoleEnum
from app.models.project import Project, ProjectStatusEnum
from app.models.earnings import Earnings

# 匯入 Schemas
from app.schemas.project_schema import ProjectCreate, ProjectOut, ProjectUpdate

# 匯入 Repositories / Services
from app.repositories.project_repo import ProjectRepository
from app.services.earnings_service import EarningsService
from app.services.notification_service import NotificationService
from app.utils.lifecycle import (
    PROJECT_LOCKED_FOR_DELETE, PROJECT_LOCKED_FOR_UPDATE, PROGRESS_MAX, can_transition, is_valid_progress
)

logger = logging.getLogger(__name__)


@dataclass
class StatusChangeResult:
    """
    狀態轉移的結果：project 是主操作 (一定成功才會回傳)，
    earnings / earnings_error 是完成時入帳 (附帶作業) 的結果。
    """
    project: Project
    earnings: Optional[Earnings] = None
    earnings_error: Optional[str] = None


class ProjectService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.project_repo = ProjectRepository(db)
        self.earnings_service = EarningsService(db)
        self.notification_service = NotificationService(db) # 用於發送通知

    # 輔助函式：取得案件並檢查是否為擁有者
    async def _get_owned_project(self, project_id: str, user: User, for_update: bool = False) -> Project:
        project = await self.project_repo.get_project_by_id(project_id, for_update=for_update)
        if not project:
            raise NotFoundError("案件不存在")
        if project.client_id != user.user_id:
            raise ForbiddenError("你沒有權限修改此案件")
        return project

    async def _publish_project_event(self, project: Project, event_name: str, **extra) -> None:
        """
        (commit 之後) 推播到 project_{id} 頻道
        """
        payload = {"project": ProjectOut.model_validate(project).model_dump(mode="json")}
        payload.update(extra)
        await manager.publish(project_topic(project.project_id), event_name, payload)

    async def create_project(self, project_data: ProjectCreate, user: User) -> Project:
        """
        業務邏輯：建立案件
        """
        # 1. 權限驗證：必須是雇主
        if user.role != UserRoleEnum.client:
            raise ForbiddenError("只有雇主可以刊登案件")

        # 2. 建立 (狀態一律從 open 開始)
        new_project = Project(
            client_id=user.user_id,
            status=ProjectStatusEnum.open,
            progress=0,
            bid_ids=[],
            **project_data.model_dump(),
        )
        await self.project_repo.create_project(new_project)
        await self.db.commit()
        logger.info(f"Project created: {new_project.project_id} by client {user.user_id}")

        # 3. 重新載入關聯 (client)
        return await self.project_repo.get_project_by_id(new_project.project_id)

    async def search_projects(
        self,
        user: User,
        status: Optional[ProjectStatusEnum] = None,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Project], int, int]:
        """
        業務邏輯：搜尋案件，回傳 (案件列表, 總筆數, 總頁數)
        雇主只看得到自己刊登的案件；工作者與管理員看得到全部
        """
        client_id = user.user_id if user.role == UserRoleEnum.client else None
        projects, total = await self.project_repo.list_projects(
            status=status,
            search=search,
            skill=skill,
            client_id=client_id,
            page=page,
            limit=limit,
        )
        total_pages = math.ceil(total / limit) if limit else 0
        return projects, total, total_pages

    async def get_project_details(self, project_id: str) -> Project:
        """
        業務邏輯：獲取單一案件詳情
        """
        project = await self.project_repo.get_project_by_id(project_id)
        if not project:
            raise NotFoundError("案件不存在")
        return project

    async def get_my_projects(self, user: User) -> List[Project]:
        """
        業務邏輯：獲取當前雇主刊登的所有案件
        """
        if user.role != UserRoleEnum.client:
            raise ForbiddenError("只有雇主可以查看自己刊登的案件")
        return await self.project_repo.list_projects_by_client_id(user.user_id)

    async def update_project(self, project_id: str, data: ProjectUpdate, user: User) -> Project:
        """
        業務邏輯：更新案件內容 (完成 / 取消後不可修改；狀態請走 change_project_status)
        """
        project = await self._get_owned_project(project_id, user, for_update=True)
        if project.status in PROJECT_LOCKED_FOR_UPDATE:
            raise InvalidStateError(f"此案件狀態為「{project.status.value}」，無法修改")

        # 明確傳入 null 的欄位視為未修改
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        # 預算區間以更新後的值檢查
        min_budget = update_data.get("min_budget", project.min_budget)
        max_budget = update_data.get("max_budget", project.max_budget)
        if max_budget < min_budget:
            raise InvalidRangeError("最高預算必須大於或等於最低預算")

        for key, value in update_data.items():
            setattr(project, key, value)

        await self.project_repo.update_project(project)
        await self.db.commit()
        return await self.project_repo.get_project_by_id(project_id)

    async def delete_project(self, project_id: str, user: User) -> None:
        """
        業務邏輯：刪除案件 (進行中不可刪除；收入紀錄保留，不隨案件刪除)
        """
        project = await self._get_owned_project(project_id, user, for_update=True)
        if project.status in PROJECT_LOCKED_FOR_DELETE:
            raise InvalidStateError("進行中的案件無法刪除")

        await self.project_repo.delete_project(project)
        await self.db.commit()
        logger.info(f"Project deleted: {project_id}")

    async def change_project_status(
        self, project_id: str, new_status: ProjectStatusEnum, user: User
    ) -> StatusChangeResult:
        """
        業務邏輯：依轉移表變更案件狀態

        - open -> in-progress 需要已選定工作者
        - in-progress -> completed 時記錄完成時間，並入帳 (附帶作業，失敗不影響狀態變更)
        """
        # 1. 鎖定案件並檢查權限
        project = await self._get_owned_project(project_id, user, for_update=True)
        current_status = project.status
        new_status = ProjectStatusEnum(new_status)

        # 2. 檢查轉移表
        if not can_transition(current_status, new_status):
            raise InvalidTransitionError(current_status.value, new_status.value)

        if new_status == ProjectStatusEnum.in_progress and not project.selected_freelancer_id:
            raise InvalidStateError("尚未選定工作者，無法開始案件")

        # 3. 更新狀態
        project.status = new_status
        if new_status == ProjectStatusEnum.completed:
            project.completion_date = utc_now()
        await self.project_repo.update_project(project)

        result = StatusChangeResult(project=project)

        # 4. 完成：入帳 (SAVEPOINT) + 通知
        if new_status == ProjectStatusEnum.completed:
            freelancer_id = project.selected_freelancer_id
            replacements = {"projectName": project.title, "amount": project.final_bid_amount}
            if freelancer_id:
                await self.notification_service.create_from_template(
                    user_id=freelancer_id,
                    category="project",
                    template_type="completed",
                    replacements=replacements,
                    link_url=f"/projects/{project_id}",
                )

            sync_result = await self.earnings_service.reconcile_on_completion(project)
            result.earnings = sync_result.earnings
            result.earnings_error = sync_result.error

            if freelancer_id and sync_result.earnings is not None:
                await self.notification_service.create_from_template(
                    user_id=freelancer_id,
                    category="payment",
                    template_type="received",
                    replacements=replacements,
                    link_url="/freelancers/earnings",
                )

        # 5. 取消：通知得標者
        elif new_status == ProjectStatusEnum.cancelled and project.selected_freelancer_id:
            await self.notification_service.create_notification(
                user_id=project.selected_freelancer_id,
                title=f"案件已取消：{project.title[:20]}",
                message="您承接的案件已被雇主取消。",
                link_url=f"/projects/{project.project_id}",
            )

        # 6. commit -> 推播
        await self.db.commit()
        logger.info(f"Project {project_id} status changed: {current_status.value} -> {new_status.value}")
        await self.notification_service.dispatch_pending()

        result.project = await self.project_repo.get_project_by_id(project_id)
        await self._publish_project_event(
            result.project,
            "project_status_changed",
            previous_status=current_status.value,
        )
        return result

    async def update_progress(self, project_id: str, progress: int, user: User) -> Project:
        """
        業務邏輯：得標工作者回報進度 (0~100)
        進度達 100 時建立 pending 收入紀錄 (不改變案件狀態)
        """
        # 1. 範圍檢查
        if not is_valid_progress(progress):
            raise InvalidRangeError("進度必須介於 0 到 100 之間")

        # 2. 取得案件
        project = await self.project_repo.get_project_by_id(project_id, for_update=True)
        if not project:
            raise NotFoundError("案件不存在")
        if not project.selected_freelancer_id:
            raise InvalidStateError("此案件尚未選定工作者")
        if project.selected_freelancer_id != user.user_id:
            raise ForbiddenError("只有得標的工作者可以回報進度")

        # 3. 更新進度
        project.progress = progress
        await self.project_repo.update_project(project)

        # 4. 進度 100% -> 建立 pending 收入紀錄
        if progress == PROGRESS_MAX and project.status == ProjectStatusEnum.in_progress:
            await self.earnings_service.record_progress_completion(project)
            await self.notification_service.create_notification(
                user_id=project.client_id,
                title=f"案件進度已達 100%：{project.title[:20]}",
                message="工作者已回報完成，請確認後將案件標記為完成。",
                link_url=f"/projects/{project.project_id}",
            )

        await self.db.commit()
        await self.notification_service.dispatch_pending()

        updated_project = await self.project_repo.get_project_by_id(project_id)
        await self._publish_project_event(updated_project, "progress_updated", progress=progress)
        return updated_project
