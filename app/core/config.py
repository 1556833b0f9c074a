# app/core/config.py
# 應用程式設定 (例如資料庫連線字串、JWT 秘鑰等)
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # 資料庫設定
    DATABASE_URL: str
    # (可選) 設為 True 會在 console 印出 SQL 語句
    DB_ECHO: bool = False
    # JWT 設定
    JWT_SECRET_KEY: str
    # JWT 演算法
    JWT_ALGORITHM: str = "HS256"
    # 存取令牌過期時間（分鐘）
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    # 日誌等級
    LOG_LEVEL: str = "INFO"
    # 允許的前端來源 (生產環境應限制，例如 'http://localhost:5173')
    CORS_ORIGINS: List[str] = ["*"]

    # 環境變數檔案 
    class Config:
        env_file = ".env"

# 建立設定實例
settings = Settings()
