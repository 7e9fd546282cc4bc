from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.database import get_db
from wanshiwu.api.deps import get_current_user
from wanshiwu.core.constants import ApplicationStatus, UserRole, TargetType
from wanshiwu.models.user import User
from wanshiwu.schemas.application import (
    ApplicationCreate,
    ApplicationUpdate,
    ApplicationResponse,
    PaginatedApplications,
)
from wanshiwu.services.application_service import ApplicationService
from wanshiwu.services.audit_service import AuditService

router = APIRouter(prefix="/applications", tags=["報名 - Applications"])


@router.get("", response_model=PaginatedApplications)
async def list_applications(
    request_id: Optional[str] = Query(default=None),
    volunteer_id: Optional[str] = Query(default=None),
    status: Optional[ApplicationStatus] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """報名列表 (義工只可以看到自己的報名)"""
    service = ApplicationService(db)
    items, total = await service.list_applications(
        actor=current_user,
        request_id=request_id,
        volunteer_id=volunteer_id,
        status=status,
        page=page,
        limit=limit,
    )
    return PaginatedApplications(
        items=[ApplicationResponse.model_validate(a) for a in items],
        total=total,
        page=page,
        limit=limit,
        has_more=(page * limit) < total,
    )


@router.post("", response_model=ApplicationResponse, status_code=201)
async def create_application(
    body: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """報名委托"""
    service = ApplicationService(db)
    application = await service.create_application(
        actor=current_user,
        request_id=body.request_id,
        volunteer_id=body.volunteer_id,
        message=body.message,
        available_time=body.available_time,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """報名詳情"""
    service = ApplicationService(db)
    application = await service.get_application_for(application_id, current_user)
    return ApplicationResponse.model_validate(application)


@router.patch("/{application_id}")
async def update_application(
    application_id: str,
    body: ApplicationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """審批報名 (管理員) 或修改留言 (義工，只限待審核)"""
    service = ApplicationService(db)
    application, old_status = await service.update_application(
        application_id,
        current_user,
        **body.model_dump(exclude_unset=True),
    )

    if application.status != old_status:
        audit = AuditService(db)
        await audit.record(
            actor_id=current_user.id,
            action="update_application_status",
            target_type=TargetType.APPLICATION,
            target_id=application.id,
            description=f"將報名狀態從 {old_status.value} 更改為 {application.status.value}",
            changes={
                "old_status": old_status.value,
                "new_status": application.status.value,
                "request_id": application.request_id,
                "volunteer_id": application.volunteer_id,
            },
        )

    return {"message": "已更新報名", "data": ApplicationResponse.model_validate(application)}


@router.delete("/{application_id}")
async def withdraw_application(
    application_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """撤回報名"""
    service = ApplicationService(db)
    application = await service.withdraw_application(application_id, current_user)

    if current_user.role == UserRole.ADMIN:
        audit = AuditService(db)
        await audit.record(
            actor_id=current_user.id,
            action="delete_application",
            target_type=TargetType.APPLICATION,
            target_id=application_id,
            description=f"刪除報名 (狀態: {application.status.value})",
            changes={"request_id": application.request_id, "volunteer_id": application.volunteer_id},
        )

    return {"message": "已撤回報名"}
