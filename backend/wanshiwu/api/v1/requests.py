"""
委托 - 公開提交、瀏覽、管理員審批/合併/跟進
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.database import get_db
from wanshiwu.api.deps import get_current_user, get_current_admin
from wanshiwu.core.constants import RequestStatus, UserRole, TargetType, APPLYABLE_REQUEST_STATUSES
from wanshiwu.core.security import generate_tracking_number, mask_requester
from wanshiwu.models.request import Request
from wanshiwu.models.user import User
from wanshiwu.schemas.request import (
    PublicRequestCreate,
    RequestCreate,
    RequestAdminUpdate,
    FollowUpCreate,
    MergeRequestsBody,
    RequesterOut,
    RequestResponse,
    PublicRequestCreatedResponse,
    PaginatedRequests,
)
from wanshiwu.services.request_service import RequestService
from wanshiwu.services.merge_service import MergeService
from wanshiwu.services.audit_service import AuditService

router = APIRouter(prefix="/requests", tags=["委托 - Requests"])


def _to_response(request: Request, is_admin: bool) -> RequestResponse:
    data = RequestResponse.model_validate(request)
    if is_admin:
        return data
    # 委托者資料、備註和跟進記錄只有管理員可見
    return data.model_copy(update={
        "requester": RequesterOut(**mask_requester(data.requester.model_dump())),
        "admin_notes": None,
        "follow_ups": [],
    })


@router.post("/submit", response_model=PublicRequestCreatedResponse, status_code=201)
async def submit_request(
    body: PublicRequestCreate,
    db: AsyncSession = Depends(get_db),
):
    """提交委托 (無需登入)"""
    service = RequestService(db)
    request = await service.submit_request(body)
    return PublicRequestCreatedResponse(
        id=request.id,
        tracking_number=generate_tracking_number(request.id),
    )


@router.post("/merge")
async def merge_requests(
    body: MergeRequestsBody,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """合併重複委托"""
    service = MergeService(db)
    main = await service.merge_requests(body.main_request_id, body.merge_request_ids, current_user)
    merged_ids = list(dict.fromkeys(body.merge_request_ids))

    audit = AuditService(db)
    await audit.record(
        actor_id=current_user.id,
        action="merge_requests",
        target_type=TargetType.REQUEST,
        target_id=main.id,
        description=f"將 {len(merged_ids)} 個委托合併到 {main.id}",
        changes={"merged_request_ids": merged_ids, "merged_with": main.merged_with},
    )

    return {"message": "已合併委托", "data": _to_response(main, True)}


@router.get("", response_model=PaginatedRequests)
async def list_requests(
    status: Optional[RequestStatus] = Query(default=None),
    include_merged: bool = Query(default=False, description="包括已合併的委托 (只限管理員)"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """委托列表 (預設不包括已合併的委托)"""
    is_admin = current_user.role == UserRole.ADMIN
    service = RequestService(db)
    items, total = await service.list_requests(
        status=status,
        include_merged=include_merged and is_admin,
        page=page,
        limit=limit,
        visible_statuses=None if is_admin else APPLYABLE_REQUEST_STATUSES,
    )
    return PaginatedRequests(
        items=[_to_response(r, is_admin) for r in items],
        total=total,
        page=page,
        limit=limit,
        has_more=(page * limit) < total,
    )


@router.post("", response_model=RequestResponse, status_code=201)
async def create_request(
    body: RequestCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """管理員建立委托"""
    service = RequestService(db)
    request = await service.create_request(body, current_user)

    audit = AuditService(db)
    await audit.record(
        actor_id=current_user.id,
        action="create_request",
        target_type=TargetType.REQUEST,
        target_id=request.id,
        description="建立委托",
        changes={"status": request.status.value},
    )

    return _to_response(request, True)


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """委托詳情"""
    service = RequestService(db)
    request = await service.get_request(request_id)
    await service.ensure_visible_to(request, current_user)
    return _to_response(request, current_user.role == UserRole.ADMIN)


@router.patch("/{request_id}")
async def update_request(
    request_id: str,
    body: RequestAdminUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """更新委托狀態或資料"""
    changes = body.model_dump(exclude_unset=True)
    service = RequestService(db)
    request, old_status = await service.update_request(request_id, current_user, **changes)

    audit = AuditService(db)
    if request.status != old_status:
        await audit.record(
            actor_id=current_user.id,
            action="update_request_status",
            target_type=TargetType.REQUEST,
            target_id=request.id,
            description=f"將委托狀態從 {old_status.value} 更改為 {request.status.value}",
            changes={"old_status": old_status.value, "new_status": request.status.value},
        )
    edited = sorted(k for k, v in changes.items() if k != "status" and v is not None)
    if edited:
        await audit.record(
            actor_id=current_user.id,
            action="update_request",
            target_type=TargetType.REQUEST,
            target_id=request.id,
            description=f"修改委托資料: {', '.join(edited)}",
            changes={"fields": edited},
        )

    return {"message": "已更新委托", "data": _to_response(request, True)}


@router.post("/{request_id}/follow-ups", response_model=RequestResponse, status_code=201)
async def add_follow_up(
    request_id: str,
    body: FollowUpCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """新增跟進記錄"""
    service = RequestService(db)
    request = await service.add_follow_up(request_id, current_user, body.method, body.content)

    audit = AuditService(db)
    await audit.record(
        actor_id=current_user.id,
        action="add_follow_up",
        target_type=TargetType.REQUEST,
        target_id=request.id,
        description=f"新增跟進記錄 ({body.method})",
    )

    return _to_response(request, True)


@router.delete("/{request_id}")
async def delete_request(
    request_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """刪除委托"""
    service = RequestService(db)
    await service.delete_request(request_id, current_user)

    audit = AuditService(db)
    await audit.record(
        actor_id=current_user.id,
        action="delete_request",
        target_type=TargetType.REQUEST,
        target_id=request_id,
        description="刪除委托",
    )

    return {"message": "已刪除委托"}
