# app/repositories/project_repo.py

import logging
from typing import List, Optional, Tuple
from sqlalchemy import cast, delete, func, or_, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

# 匯入 Models
from app.models.project import Project, ProjectStatusEnum
from app.models.bid import Bid
from app.models.review import Review

logger = logging.getLogger(__name__)

class ProjectRepository:
    """
    封裝對 'projects' 資料表的操作
    (交易) 這裡只 flush，commit 由 Service 層統一執行
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_common_project_options(self):
        """
        ProjectOut Schema 需要的 Eager Loading (雇主、得標工作者)，避免 async lazy load
        """
        return [
            joinedload(Project.client),
            joinedload(Project.selected_freelancer),
        ]

    async def create_project(self, project: Project) -> Project:
        """
        (C) 新增案件
        """
        self.db.add(project)
        await self.db.flush()
        return project

    async def get_project_by_id(self, project_id: str, for_update: bool = False) -> Project | None:
        """
        透過 ID 獲取單一案件 (包含雇主與得標工作者)

        for_update=True 時鎖定該列 (接受出價、狀態轉移時使用)
        """
        stmt = (
            select(Project)
            .where(Project.project_id == project_id)
            .options(*self._get_common_project_options())
            # (重要) 已在 Session 中的物件也要以資料庫內容覆蓋，確保關聯是最新的
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=Project)

        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_projects(
        self,
        status: Optional[ProjectStatusEnum] = None,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        client_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Project], int]:
        """
        依條件搜尋案件 (分頁)，回傳 (案件列表, 總筆數)
        1. 狀態 (status): 精確比對
        2. 關鍵字 (search): 標題或描述模糊比對
        3. 技能 (skill): 技能標籤包含
        4. 雇主 (client_id): 雇主只看得到自己的案件
        """
        conditions = []
        if status:
            conditions.append(Project.status == status)
        if search:
            logger.info(f"Applying search filter: {search}")
            conditions.append(
                or_(
                    Project.title.ilike(f"%{search}%"),
                    Project.description.ilike(f"%{search}%"),
                )
            )
        if skill:
            # JSON 陣列以字串比對 '"python"'
            logger.info(f"Applying skill filter: {skill}")
            conditions.append(cast(Project.skills, String).ilike(f'%"{skill.strip()}"%'))
        if client_id:
            conditions.append(Project.client_id == client_id)

        count_stmt = select(func.count(Project.project_id)).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            select(Project)
            .where(*conditions)
            .options(*self._get_common_project_options())
            .order_by(Project.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all(), total

    async def list_projects_by_client_id(self, client_id: str) -> List[Project]:
        """
        查詢特定雇主的所有案件
        """
        stmt = (
            select(Project)
            .where(Project.client_id == client_id)
            .options(*self._get_common_project_options())
            .order_by(Project.created_at.desc()) # 按建立時間排序
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_finished_projects_for_freelancer(self, freelancer_id: str) -> List[Project]:
        """
        工作者得標、且 (已完成 或 進度 100%) 的案件 (收入補帳使用)
        """
        stmt = select(Project).where(
            Project.selected_freelancer_id == freelancer_id,
            or_(
                Project.status == ProjectStatusEnum.completed,
                Project.progress == 100,
            ),
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def update_project(self, project: Project) -> Project:
        """
        (U) 送出對現有 Project 物件的變更
        """
        await self.db.flush()
        return project

    async def delete_project(self, project: Project) -> None:
        """
        (D) 刪除案件，連同其出價與評價
        """
        await self.db.execute(delete(Bid).where(Bid.project_id == project.project_id))
        await self.db.execute(delete(Review).where(Review.project_id == project.project_id))
        await self.db.delete(project)
        await self.db.flush()
