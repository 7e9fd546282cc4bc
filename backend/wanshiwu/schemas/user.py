from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator
import re

from wanshiwu.core.constants import UserRole, UserStatus, ServiceField


class VolunteerRegister(BaseModel):
    """義工登記資料"""
    display_name: str = Field(..., min_length=1, max_length=100, description="點樣稱呼你?")
    phone: str = Field(..., min_length=8, max_length=20, description="電話號碼(WhatsApp)")
    age: str = Field(..., min_length=1, max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    fields: List[ServiceField] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    availability: List[str] = Field(default_factory=list)
    target_audience: List[str] = Field(default_factory=list)
    goals: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        phone = re.sub(r'[\s\-]', '', v)
        if not re.match(r'^(\+?[0-9]{8,15})$', phone):
            raise ValueError('電話號碼無效')
        return phone


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, min_length=8, max_length=20)
    age: Optional[str] = Field(default=None, max_length=20)
    fields: Optional[List[ServiceField]] = None
    skills: Optional[List[str]] = None
    availability: Optional[List[str]] = None
    target_audience: Optional[List[str]] = None
    goals: Optional[str] = Field(default=None, max_length=2000)

    model_config = {"extra": "forbid"}


class VolunteerStatusUpdate(BaseModel):
    """審核義工 (批准時附面試記錄，拒絕時附原因)"""
    status: UserStatus
    notes: Optional[str] = Field(default=None, max_length=2000)


class UserResponse(BaseModel):
    id: str
    email: Optional[str]
    role: UserRole
    display_name: Optional[str]
    phone: Optional[str]
    age: Optional[str]
    fields: List[str] = []
    skills: List[str] = []
    availability: List[str] = []
    target_audience: List[str] = []
    goals: Optional[str]
    status: UserStatus
    interview_date: Optional[datetime]
    interview_notes: Optional[str]
    rejection_reason: Optional[str]
    completed_tasks: int
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class PaginatedUsers(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    limit: int
    has_more: bool
