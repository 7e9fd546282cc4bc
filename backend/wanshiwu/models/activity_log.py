import uuid

from sqlalchemy import Column, String, Text, DateTime, Enum, JSON

from wanshiwu.database import Base, utcnow
from wanshiwu.core.constants import TargetType


class ActivityLog(Base):
    """管理員操作日誌 (只可追加)"""
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(128), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    target_type = Column(Enum(TargetType), nullable=False)
    target_id = Column(String(128), nullable=False)
    description = Column(Text, nullable=False)
    changes = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
