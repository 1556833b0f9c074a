# app/services/user_service.py
# (管理員) 使用者管理：列表、統計、更新資料與停權

import logging
import math
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple

from app.core.database import utc_now
from app.core.exceptions import InvalidStateError, NotFoundError
from app.models.user import User, UserRoleEnum
from app.repositories.user_repo import UserRepository
from app.schemas.user_schema import AdminUserUpdate, UserStatsOut

logger = logging.getLogger(__name__)

# 「新使用者」統計的天數
NEW_USER_DAYS = 30


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def get_user(self, user_id: str) -> User:
        user = await self.user_repo.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("使用者不存在")
        return user

    async def list_users(
        self,
        role: Optional[UserRoleEnum] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[User], int, int]:
        users, total = await self.user_repo.list_users(role=role, search=search, page=page, limit=limit)
        total_pages = math.ceil(total / limit) if limit else 0
        return users, total, total_pages

    async def get_user_stats(self) -> UserStatsOut:
        by_active = await self.user_repo.count_by_active()
        return UserStatsOut(
            users_by_role=await self.user_repo.count_by_role(),
            new_users=await self.user_repo.count_created_since(utc_now() - timedelta(days=NEW_USER_DAYS)),
            active_users=by_active.get(True, 0),
            inactive_users=by_active.get(False, 0),
        )

    async def update_user(self, user_id: str, data: AdminUserUpdate, admin: User) -> User:
        """
        只更新有帶的欄位 (null 視為未修改)。
        管理員不能停權自己或移除自己的管理員角色。
        """
        user = await self.get_user(user_id)
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        if user.user_id == admin.user_id:
            if update_data.get("is_active") is False:
                raise InvalidStateError("無法停權自己的帳號")
            if update_data.get("role", UserRoleEnum.admin) != UserRoleEnum.admin:
                raise InvalidStateError("無法移除自己的管理員角色")

        new_email = update_data.get("email")
        if new_email and new_email != user.email and await self.user_repo.get_user_by_email(new_email):
            raise InvalidStateError("此 Email 已經被註冊")

        for key, value in update_data.items():
            setattr(user, key, value)

        await self.user_repo.update_user(user)
        await self.db.commit()
        logger.info(f"User {user_id} updated by admin {admin.user_id}: {sorted(update_data)}")
        return user
