# app/services/auth_service.py
import logging
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStateError
from app.core.security import verify_password, create_access_token, get_password_hash
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user_schema import UserCreate

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def authenticate_user(self, email: str, password: str) -> User | None:
        """
        帳號不存在、已停權或密碼錯誤都回傳 None (不區分原因)
        """
        user = await self.user_repo.get_user_by_email(email)
        if not user or not user.is_active:
            return None
        if not verify_password(plain_password=password, hashed_password=user.password_hash):
            return None
        return user

    async def register_user(self, user_create: UserCreate) -> User:
        """
        註冊雇主 / 自由工作者 (管理員帳號由 Schema 擋下)
        """
        if await self.user_repo.get_user_by_email(user_create.email):
            raise InvalidStateError("此 Email 已經被註冊")

        new_user = User(
            name=user_create.name.strip(),
            email=user_create.email,
            password_hash=get_password_hash(user_create.password),
            role=user_create.role,
        )
        await self.user_repo.create_user(new_user)
        await self.db.commit()
        logger.info(f"User registered: {new_user.user_id} ({new_user.role.value})")
        return new_user

    def create_login_token(self, user: User) -> str:
        # Token 只帶身分與角色，其餘資料每次請求重新查詢
        return create_access_token(
            data={
                "sub": user.email,
                "user_id": str(user.user_id),
                "role": user.role.value,
            }
        )
