import uuid

from sqlalchemy import Column, String, Text, DateTime, Enum, ForeignKey, UniqueConstraint

from wanshiwu.database import Base, utcnow
from wanshiwu.core.constants import ApplicationStatus


class Application(Base):
    """義工報名記錄"""
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("request_id", "volunteer_id", name="uq_applications_request_volunteer"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(String(36), ForeignKey("requests.id", ondelete="CASCADE"), nullable=False, index=True)
    volunteer_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    volunteer_name = Column(String(100), nullable=True)

    status = Column(Enum(ApplicationStatus), nullable=False, default=ApplicationStatus.PENDING)
    message = Column(Text, nullable=True)                 # 義工留言
    available_time = Column(String(255), nullable=True)   # 可服務時間
    admin_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
