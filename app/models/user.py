# models/user.py
import enum
import uuid
from sqlalchemy import Column, String, Boolean, Enum, CHAR, DateTime
from app.core.database import Base, utc_now

# 對應使用者角色
class UserRoleEnum(str, enum.Enum):
    client = "client"
    freelancer = "freelancer"
    admin = "admin"

class User(Base):
    __tablename__ = "users"

    # 基本欄位
    user_id = Column(CHAR(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRoleEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now)
