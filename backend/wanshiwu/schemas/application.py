from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field

from wanshiwu.core.constants import ApplicationStatus


class ApplicationCreate(BaseModel):
    request_id: str = Field(..., min_length=1)
    volunteer_id: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=2000)
    available_time: Optional[str] = Field(default=None, max_length=255)


class ApplicationUpdate(BaseModel):
    status: Optional[ApplicationStatus] = None
    message: Optional[str] = Field(default=None, max_length=2000)
    available_time: Optional[str] = Field(default=None, max_length=255)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = {"extra": "forbid"}


class ApplicationResponse(BaseModel):
    id: str
    request_id: str
    volunteer_id: str
    volunteer_name: Optional[str]
    status: ApplicationStatus
    message: Optional[str]
    available_time: Optional[str]
    admin_notes: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
    matched_at: Optional[datetime]
    completed_at: Optional[datetime]

    model_config = {"from_attributes": True}


class PaginatedApplications(BaseModel):
    items: List[ApplicationResponse]
    total: int
    page: int
    limit: int
    has_more: bool
