# app/main.py
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import PersistenceFailureError
from app.routers import (
    auth_router, user_router,
    project_router, earnings_router, review_router,
    notification_router, message_router, admin_router, realtime_router
)

# 出價的 router 分別掛在 /bids、/projects、/freelancers 底下
from app.routers.bid_router import (
    router as bid_main_router,
    project_bid_router,
    freelancer_bid_router
)

# --- 匯入所有 Model 檔案 ---
# 都在應用程式啟動時被 SQLAlchemy 註冊。
from app.models import user
from app.models import project
from app.models import bid
from app.models import earnings
from app.models import review
from app.models import notification
from app.models import message


# 設定基礎日誌
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__) # 建立一個 logger 實例

app = FastAPI(title="SkillSwap Backend")

# --- 設定 CORS (跨來源資源共用) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"], # 允許所有 HTTP 方法
    allow_headers=["*"], # 允許所有 HTTP 標頭
)

# --- 資料庫錯誤 -> 500 (PersistenceFailure) ---
@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    error = PersistenceFailureError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

# --- 根路徑 ---
@app.get("/")
def read_root():
    return {"status": "success", "message": "Backend is running!"}

# --- 載入 API 路由 ---
app.include_router(auth_router.router)
app.include_router(user_router.router)
app.include_router(project_router.router)
app.include_router(project_bid_router)
app.include_router(freelancer_bid_router)
app.include_router(bid_main_router)
app.include_router(earnings_router.router)
app.include_router(review_router.router)
app.include_router(notification_router.router)
app.include_router(message_router.router)
app.include_router(admin_router.router)
app.include_router(realtime_router.router)
