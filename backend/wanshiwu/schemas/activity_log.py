from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from wanshiwu.core.constants import TargetType


class ActivityLogResponse(BaseModel):
    id: str
    actor_id: str
    action: str
    target_type: TargetType
    target_id: str
    description: str
    changes: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginatedActivityLogs(BaseModel):
    items: List[ActivityLogResponse]
    total: int
    page: int
    limit: int
    has_more: bool
