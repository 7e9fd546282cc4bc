"""
管理後台 - 義工審核、操作日誌、統計
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.database import get_db
from wanshiwu.api.deps import get_current_admin
from wanshiwu.core.constants import UserRole, UserStatus, TargetType
from wanshiwu.models.application import Application
from wanshiwu.models.request import Request
from wanshiwu.models.user import User
from wanshiwu.schemas.user import VolunteerStatusUpdate, UserResponse, PaginatedUsers
from wanshiwu.schemas.activity_log import ActivityLogResponse, PaginatedActivityLogs
from wanshiwu.services.user_service import UserService
from wanshiwu.services.audit_service import AuditService

router = APIRouter(prefix="/admin", tags=["管理 - Admin"])


# === 義工 ===

@router.get("/volunteers", response_model=PaginatedUsers)
async def list_volunteers(
    status: Optional[UserStatus] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """義工列表"""
    service = UserService(db)
    items, total = await service.list_volunteers(status=status, page=page, limit=limit)
    return PaginatedUsers(
        items=[UserResponse.model_validate(u) for u in items],
        total=total,
        page=page,
        limit=limit,
        has_more=(page * limit) < total,
    )


@router.get("/volunteers/{volunteer_id}", response_model=UserResponse)
async def get_volunteer(
    volunteer_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """義工詳情"""
    service = UserService(db)
    volunteer = await service.get_volunteer(volunteer_id)
    return UserResponse.model_validate(volunteer)


@router.patch("/volunteers/{volunteer_id}")
async def update_volunteer_status(
    volunteer_id: str,
    body: VolunteerStatusUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """審核義工 (批准/拒絕/暫停)"""
    service = UserService(db)
    volunteer, old_status = await service.set_volunteer_status(volunteer_id, body.status, body.notes)

    if volunteer.status != old_status:
        audit = AuditService(db)
        await audit.record(
            actor_id=current_user.id,
            action="update_volunteer_status",
            target_type=TargetType.USER,
            target_id=volunteer.id,
            description=f"將義工狀態從 {old_status.value} 更改為 {volunteer.status.value}",
            changes={"old_status": old_status.value, "new_status": volunteer.status.value},
        )

    return {"message": "已更新義工狀態", "data": UserResponse.model_validate(volunteer)}


# === 操作日誌 ===

@router.get("/logs", response_model=PaginatedActivityLogs)
async def list_activity_logs(
    user_id: Optional[str] = Query(default=None, description="操作者"),
    action: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """操作日誌"""
    service = AuditService(db)
    items, total = await service.list_logs(
        actor_id=user_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return PaginatedActivityLogs(
        items=[ActivityLogResponse.model_validate(log) for log in items],
        total=total,
        page=page,
        limit=limit,
        has_more=(page * limit) < total,
    )


# === 統計 ===

@router.get("/stats/overview")
async def get_overview_stats(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """統計概覽"""
    # 委托 (不包括已合併)
    status_result = await db.execute(
        select(Request.status, func.count(Request.id))
        .where(Request.is_merged.is_(False))
        .group_by(Request.status)
    )
    requests_by_status = {row[0].value: row[1] for row in status_result.all()}

    merged = (await db.execute(
        select(func.count(Request.id)).where(Request.is_merged.is_(True))
    )).scalar()

    # 報名
    app_result = await db.execute(
        select(Application.status, func.count(Application.id))
        .group_by(Application.status)
    )
    applications_by_status = {row[0].value: row[1] for row in app_result.all()}

    # 待審核義工
    pending_volunteers = (await db.execute(
        select(func.count(User.id)).where(
            User.role == UserRole.VOLUNTEER,
            User.status == UserStatus.PENDING,
        )
    )).scalar()

    return {
        "data": {
            "total_requests": sum(requests_by_status.values()),
            "requests_by_status": requests_by_status,
            "merged_requests": merged or 0,
            "applications_by_status": applications_by_status,
            "pending_volunteers": pending_volunteers or 0,
        }
    }
