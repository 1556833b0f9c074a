# app/repositories/user_repo.py
# 使用者資料表的存取 (只 flush，commit 由 Service 層執行)
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.models.user import User, UserRoleEnum

class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_one(self, *conditions) -> User | None:
        result = await self.db.execute(select(User).where(*conditions))
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._get_one(User.email == email)

    async def get_user_by_id(self, user_id: str) -> User | None:
        return await self._get_one(User.user_id == user_id)

    async def create_user(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        return user

    async def update_user(self, user: User) -> User:
        await self.db.flush()
        return user

    async def list_users(
        self,
        role: Optional[UserRoleEnum] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int]:
        """
        (管理員) 依角色 / 名稱或 Email 關鍵字搜尋，新註冊的在前，回傳 (使用者列表, 總筆數)
        """
        conditions = []
        if role:
            conditions.append(User.role == role)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = (await self.db.execute(select(func.count(User.user_id)).where(*conditions))).scalar_one()
        stmt = (
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all(), total

    async def count_by_role(self) -> Dict[str, int]:
        result = await self.db.execute(select(User.role, func.count(User.user_id)).group_by(User.role))
        return {role.value: count for role, count in result.all()}

    async def count_by_active(self) -> Dict[bool, int]:
        result = await self.db.execute(select(User.is_active, func.count(User.user_id)).group_by(User.is_active))
        return {bool(is_active): count for is_active, count in result.all()}

    async def count_created_since(self, since: datetime) -> int:
        stmt = select(func.count(User.user_id)).where(User.created_at >= since)
        return (await self.db.execute(stmt)).scalar_one()
