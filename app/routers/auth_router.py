# app/routers/auth_router.py
# 帳號註冊與登入 (發行 JWT)，其他路由以 get_current_user / require_roles 驗證
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.services.auth_service import AuthService
from app.schemas.user_schema import Token, UserCreate, UserOut


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    註冊雇主 (client) 或自由工作者 (freelancer) 帳號。

    - 管理員帳號不開放註冊
    - Email 已被使用時回傳 400
    """
    return await AuthService(db).register_user(user_data)


@router.post("/token", response_model=Token)
async def login(
    # OAuth2 表單：username 欄位放 email
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """
    登入並取得 Bearer Token (payload 含 user_id 與 role)。
    停權帳號與錯誤密碼一樣回傳 401。
    """
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(email=form_data.username, password=form_data.password)
    if not user:
        logger.info(f"Login failed for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="帳號或密碼錯誤",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info(f"User logged in: {user.user_id} ({user.role.value})")
    return Token(access_token=auth_service.create_login_token(user), token_type="bearer")
