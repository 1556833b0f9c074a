# app/core/security.py
# 密碼雜湊 (passlib/bcrypt)、JWT (python-jose) 與身分 / 角色相關的 FastAPI 依賴
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, Query, status, WebSocket, WebSocketDisconnect
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ForbiddenError
from app.schemas.user_schema import TokenData
from app.repositories.user_repo import UserRepository
from app.models.user import User, UserRoleEnum

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Token 從 Authorization Header 取得 (登入端點為 /auth/token)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """
    產生 JWT，payload 需包含 user_id 與 role
    """
    to_encode = data.copy()
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

def verify_access_token(token: str) -> TokenData | None:
    """
    驗證 JWT，回傳呼叫者身分 {user_id, role}；無效或過期回傳 None
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("user_id")
    role = payload.get("role")
    if user_id is None or role is None:
        return None
    return TokenData(user_id=user_id, role=role)

async def _load_active_user(token: str, db: AsyncSession) -> tuple[Optional[User], Optional[str]]:
    """
    依 Token 載入使用者，回傳 (使用者, 失敗原因)
    """
    token_data = verify_access_token(token)
    if token_data is None:
        return None, "無法驗證憑證"

    user = await UserRepository(db).get_user_by_id(user_id=token_data.user_id)
    if user is None:
        return None, "無法驗證憑證"
    if not user.is_active:
        return None, "此帳號已被停權"
    return user, None

async def get_current_user(
    token: str = Depends(oauth2_scheme), 
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    REST API 用：驗證 Token 並回傳 User
    """
    user, reason = await _load_active_user(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=reason,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

def require_roles(*roles: UserRoleEnum) -> Callable:
    """
    路由層級的角色檢查
    用法: Depends(require_roles(UserRoleEnum.client))
    """
    async def _checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            allowed = "、".join(role.value for role in roles)
            raise ForbiddenError(f"此操作僅限 {allowed} 角色")
        return current_user
    return _checker

async def get_current_user_from_websocket_token(
    websocket: WebSocket,
    token: str = Query(...), # 從 Query 參數 (?token=...) 讀取
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    WebSocket 專用的 Token 驗證依賴
    """
    user, reason = await _load_active_user(token, db)
    if user is None:
        raise WebSocketDisconnect(code=status.WS_1008_POLICY_VIOLATION, reason=reason)
    return user
