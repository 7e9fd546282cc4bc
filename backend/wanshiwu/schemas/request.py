from typing import Optional, List, Union
from datetime import datetime

from pydantic import BaseModel, Field, field_validator
import re

from wanshiwu.core.constants import RequestStatus, ServiceField


# === 委托者資料 ===
class RequesterInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="點樣稱呼你?")
    phone: str = Field(..., min_length=8, max_length=20, description="聯絡電話")
    age: str = Field(..., min_length=1, max_length=20, description="年齡")
    district: str = Field(..., min_length=1, max_length=100, description="居住地區")

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        # 移除空格和連字號
        phone = re.sub(r'[\s\-]', '', v)
        if not re.match(r'^(\+?[0-9]{8,15})$', phone):
            raise ValueError('電話號碼無效')
        return phone


class RequesterOut(BaseModel):
    name: str
    phone: str
    age: str
    district: str


# === 委托 - 建立 (公開，無需登入) ===
class PublicRequestCreate(BaseModel):
    """提交新委托 - 任何人都可以提交"""
    requester: RequesterInfo
    description: str = Field(..., min_length=1, max_length=2000, description="有咩煩惱或者需求啊?")
    fields: List[ServiceField] = Field(..., min_length=1, description="幫助範疇")
    appreciation: Optional[str] = Field(default=None, max_length=255, description="答謝方式")
    urgency: Optional[str] = Field(default=None, max_length=50)
    service_type: Optional[str] = Field(default=None, max_length=100)
    estimated_duration: Optional[str] = Field(default=None, max_length=100)


class RequestCreate(PublicRequestCreate):
    """管理員代為建立委托"""
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


# === 管理員更新 ===
class RequestAdminUpdate(BaseModel):
    """更新委托狀態或資料 (跟進記錄及合併欄位不可直接寫入)"""
    status: Optional[RequestStatus] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    fields: Optional[List[ServiceField]] = Field(default=None, min_length=1)
    urgency: Optional[str] = Field(default=None, max_length=50)
    service_type: Optional[str] = Field(default=None, max_length=100)
    estimated_duration: Optional[str] = Field(default=None, max_length=100)
    appreciation: Optional[str] = Field(default=None, max_length=255)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = {"extra": "forbid"}


class FollowUpCreate(BaseModel):
    method: str = Field(..., min_length=1, max_length=100, description="聯絡方式")
    content: str = Field(..., min_length=1, max_length=2000, description="記錄內容")

    @field_validator('method', 'content')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('請填寫聯絡方式和記錄內容')
        return v


class FollowUpResponse(BaseModel):
    date: datetime
    method: str
    content: str
    admin_id: str


class MergeRequestsBody(BaseModel):
    main_request_id: str = Field(..., min_length=1)
    merge_request_ids: List[str]


# === 回應 ===
class RequestResponse(BaseModel):
    """委托回應"""
    id: str
    requester: RequesterOut
    description: str
    fields: List[str]
    urgency: Optional[str]
    service_type: Optional[str]
    estimated_duration: Optional[str]
    appreciation: Optional[str]
    status: RequestStatus
    admin_notes: Optional[str]
    follow_ups: List[FollowUpResponse] = []
    is_merged: bool
    merged_with: Optional[Union[List[str], str]]
    created_at: datetime
    updated_at: Optional[datetime]
    matched_at: Optional[datetime]
    completed_at: Optional[datetime]

    model_config = {"from_attributes": True}


class PublicRequestCreatedResponse(BaseModel):
    """提交委托後的回應"""
    id: str
    tracking_number: str
    message: str = "已收到你的委托，我們會盡快聯絡你。"


class PaginatedRequests(BaseModel):
    items: List[RequestResponse]
    total: int
    page: int
    limit: int
    has_more: bool
