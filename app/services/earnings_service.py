# app/services/earnings_service.py

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utc_now
from app.core.exceptions import ForbiddenError
from app.models.earnings import Earnings, EarningsStatusEnum
from app.models.project import Project, ProjectStatusEnum
from app.models.user import User, UserRoleEnum
from app.repositories.earnings_repo import EarningsRepository
from app.repositories.project_repo import ProjectRepository
from app.utils.earnings_export import format_earnings_csv, format_earnings_json, period_start

logger = logging.getLogger(__name__)


@dataclass
class EarningsSyncResult:
    """
    附帶作業 (案件完成時的收入入帳) 的結果。
    succeeded=False 時主操作仍然成功，error 記錄失敗原因。
    """
    succeeded: bool
    earnings: Optional[Earnings] = None
    error: Optional[str] = None


class EarningsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.earnings_repo = EarningsRepository(db)
        self.project_repo = ProjectRepository(db)

    def _ensure_freelancer(self, user: User) -> None:
        if user.role != UserRoleEnum.freelancer:
            raise ForbiddenError("只有自由工作者可以查看收入")

    # --- 案件生命週期觸發 ---

    async def record_progress_completion(self, project: Project) -> Optional[Earnings]:
        """
        進度達 100% 時建立 pending 收入紀錄；已存在則略過 (回傳 None)
        不 commit，與進度更新同一個交易
        """
        existing = await self.earnings_repo.get_by_project_and_freelancer(
            project.project_id, project.selected_freelancer_id
        )
        if existing:
            logger.info(f"Earnings already exist for project {project.project_id}, skipping")
            return None

        earnings = Earnings(
            freelancer_id=project.selected_freelancer_id,
            project_id=project.project_id,
            client_id=project.client_id,
            amount=project.final_bid_amount,
            date=utc_now(),
            status=EarningsStatusEnum.pending,  # 等雇主將案件標記為完成
        )
        await self.earnings_repo.create_earnings(earnings)
        logger.info(f"Created pending earnings record for project {project.project_id}")
        return earnings

    async def reconcile_on_completion(self, project: Project) -> EarningsSyncResult:
        """
        案件完成時入帳：沒有紀錄就建立 completed，有 pending 紀錄就改成 completed。
        在 SAVEPOINT 中執行，失敗只回滾這一段並記錄錯誤，不影響案件狀態的變更。
        """
        if not project.selected_freelancer_id:
            return EarningsSyncResult(succeeded=True)

        try:
            async with self.db.begin_nested():
                earnings = await self._complete_earnings(project)
        except Exception as e:
            logger.error(f"Error handling earnings record for project {project.project_id}: {e}", exc_info=True)
            return EarningsSyncResult(succeeded=False, error=str(e))

        return EarningsSyncResult(succeeded=True, earnings=earnings)

    async def _complete_earnings(self, project: Project) -> Earnings:
        existing = await self.earnings_repo.get_by_project_and_freelancer(
            project.project_id, project.selected_freelancer_id
        )
        if existing is None:
            earnings = Earnings(
                freelancer_id=project.selected_freelancer_id,
                project_id=project.project_id,
                client_id=project.client_id,
                amount=project.final_bid_amount,
                date=utc_now(),
                status=EarningsStatusEnum.completed,
            )
            await self.earnings_repo.create_earnings(earnings)
            logger.info(f"Created earnings record for project {project.project_id}")
            return earnings

        existing.status = EarningsStatusEnum.completed
        await self.earnings_repo.update_earnings(existing)
        logger.info(f"Updated earnings record for project {project.project_id} to completed")
        return existing

    # --- 補帳 / 修正 ---

    async def sync_missing_earnings(self, freelancer: User) -> int:
        """
        為工作者補上缺少的收入紀錄，回傳新建的筆數。
        重複執行不會產生重複資料 (先查詢，再由唯一鍵保底)。
        """
        self._ensure_freelancer(freelancer)
        freelancer_id = freelancer.user_id
        logger.info(f"Syncing missing earnings for freelancer: {freelancer_id}")

        projects = await self.project_repo.list_finished_projects_for_freelancer(freelancer_id)
        logger.info(f"Found {len(projects)} finished projects")

        new_earnings_count = 0
        for project in projects:
            if not project.final_bid_amount:
                logger.info(f"Project {project.project_id} has no final bid amount, skipping")
                continue

            existing = await self.earnings_repo.get_by_project_and_freelancer(project.project_id, freelancer_id)
            if existing:
                continue

            is_completed = project.status == ProjectStatusEnum.completed
            earnings = Earnings(
                freelancer_id=freelancer_id,
                project_id=project.project_id,
                client_id=project.client_id,
                amount=project.final_bid_amount,
                date=project.completion_date or utc_now(),
                status=EarningsStatusEnum.completed if is_completed else EarningsStatusEnum.pending,
            )
            try:
                async with self.db.begin_nested():
                    await self.earnings_repo.create_earnings(earnings)
            except IntegrityError:
                # 其他請求剛好同時寫入
                logger.info(f"Earnings for project {project.project_id} were created concurrently, skipping")
                continue

            new_earnings_count += 1
            logger.info(f"Created earnings record for project {project.project_id}")

        await self.db.commit()
        return new_earnings_count

    async def fix_pending_earnings(self) -> int:
        """
        (管理員) 案件已完成但收入仍是 pending 的紀錄，全部改為 completed
        """
        pending = await self.earnings_repo.list_pending_for_completed_projects()
        logger.info(f"Found {len(pending)} pending earnings on completed projects")
        for earnings in pending:
            earnings.status = EarningsStatusEnum.completed
        await self.db.commit()
        return len(pending)

    # --- 查詢 / 匯出 ---

    async def list_earnings(
        self,
        freelancer: User,
        period: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Earnings]:
        self._ensure_freelancer(freelancer)
        status_filter = status if status and status != "all" else None
        since = period_start(period, utc_now())
        return await self.earnings_repo.list_by_freelancer(
            freelancer.user_id, status=status_filter, since=since
        )

    async def export_earnings(
        self,
        freelancer: User,
        period: Optional[str] = None,
        status: Optional[str] = None,
        export_format: str = "json",
    ) -> Tuple[str, str, str]:
        """
        回傳 (內容, Content-Type, 檔名)
        """
        earnings = await self.list_earnings(freelancer, period, status)
        timestamp = utc_now().strftime("%Y%m%d%H%M%S")
        if export_format == "csv":
            return format_earnings_csv(earnings), "text/csv", f"earnings-{timestamp}.csv"
        return format_earnings_json(earnings), "application/json", f"earnings-{timestamp}.json"
