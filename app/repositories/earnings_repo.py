# app/repositories/earnings_repo.py

from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from typing import List, Optional

from app.models.earnings import Earnings, EarningsStatusEnum
from app.models.project import Project, ProjectStatusEnum


class EarningsRepository:
    """
    封裝對 'earnings' 資料表的操作
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_project_and_freelancer(self, project_id: str, freelancer_id: str) -> Optional[Earnings]:
        """
        (R) 每個 (案件, 工作者) 最多一筆
        """
        stmt = select(Earnings).where(
            Earnings.project_id == project_id,
            Earnings.freelancer_id == freelancer_id,
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def create_earnings(self, earnings: Earnings) -> Earnings:
        """
        (C) 新增收入紀錄 (重複時由唯一鍵拋出 IntegrityError)
        """
        self.db.add(earnings)
        await self.db.flush()
        return earnings

    async def update_earnings(self, earnings: Earnings) -> Earnings:
        await self.db.flush()
        return earnings

    async def list_by_freelancer(
        self,
        freelancer_id: str,
        status: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Earnings]:
        """
        (R) 工作者的收入紀錄 (新 -> 舊)，可依狀態與起始日期篩選
        """
        stmt = select(Earnings).where(Earnings.freelancer_id == freelancer_id)
        if status:
            stmt = stmt.where(Earnings.status == status)
        if since:
            stmt = stmt.where(Earnings.date >= since)
        stmt = stmt.options(
            selectinload(Earnings.project),
            selectinload(Earnings.client),
        ).order_by(Earnings.date.desc())

        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_pending_for_completed_projects(self) -> List[Earnings]:
        """
        (R) 案件已完成、但收入仍為 pending 的紀錄
        """
        stmt = (
            select(Earnings)
            .join(Project, Project.project_id == Earnings.project_id)
            .where(
                Project.status == ProjectStatusEnum.completed,
                Earnings.status == EarningsStatusEnum.pending,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
