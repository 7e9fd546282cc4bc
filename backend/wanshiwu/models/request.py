import uuid

from sqlalchemy import Column, String, Boolean, Text, DateTime, Enum, JSON

from wanshiwu.database import Base, utcnow
from wanshiwu.core.constants import RequestStatus


class Request(Base):
    """委托"""
    __tablename__ = "requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # 委托者資料 (敏感，只有管理員可見)
    requester_name = Column(String(100), nullable=False)
    requester_phone = Column(String(20), nullable=False, index=True)
    requester_age = Column(String(20), nullable=False)
    requester_district = Column(String(100), nullable=False)

    # 需求詳情
    description = Column(Text, nullable=False)
    fields = Column(JSON, nullable=False, default=list)       # 服務範疇
    urgency = Column(String(50), nullable=True)
    service_type = Column(String(100), nullable=True)
    estimated_duration = Column(String(100), nullable=True)
    appreciation = Column(String(255), nullable=True)          # 答謝方式

    # 後台管理
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    admin_notes = Column(Text, nullable=True)
    follow_ups = Column(JSON, nullable=False, default=list)    # 只可追加

    # 合併
    is_merged = Column(Boolean, nullable=False, default=False, index=True)
    merged_with = Column(JSON, nullable=True)                  # 主委托: id 列表；被合併: 主委托 id

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def requester(self) -> dict:
        return {
            "name": self.requester_name,
            "phone": self.requester_phone,
            "age": self.requester_age,
            "district": self.requester_district,
        }
