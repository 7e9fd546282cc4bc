import uuid

from sqlalchemy import Column, String, Integer, Text, DateTime, Enum, JSON

from wanshiwu.database import Base, utcnow
from wanshiwu.core.constants import UserRole, UserStatus


class User(Base):
    """義工/管理員 (角色資料，主鍵即身份提供者的 uid)"""
    __tablename__ = "users"

    id = Column(String(128), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=True, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.VOLUNTEER)

    # 個人資料
    display_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    age = Column(String(20), nullable=True)

    # 義工專屬
    fields = Column(JSON, default=list)
    skills = Column(JSON, default=list)
    availability = Column(JSON, default=list)
    target_audience = Column(JSON, default=list)
    goals = Column(Text, nullable=True)

    # 審核
    status = Column(Enum(UserStatus), nullable=False, default=UserStatus.PENDING)
    interview_date = Column(DateTime(timezone=True), nullable=True)
    interview_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # 統計
    completed_tasks = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
