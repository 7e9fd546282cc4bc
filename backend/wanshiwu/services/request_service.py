import logging
from datetime import datetime
from typing import Optional, Tuple, List, Sequence

from sqlalchemy import select, func, update, and_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.core.constants import (
    RequestStatus,
    ApplicationStatus,
    UserRole,
    APPLYABLE_REQUEST_STATUSES,
)
from wanshiwu.core.exceptions import (
    NotFoundError,
    ForbiddenError,
    ConflictError,
)
from wanshiwu.core.workflow import ensure_request_transition, cascade_application_status
from wanshiwu.database import utcnow
from wanshiwu.models.request import Request
from wanshiwu.models.application import Application
from wanshiwu.models.user import User
from wanshiwu.schemas.request import PublicRequestCreate, RequestCreate

logger = logging.getLogger(__name__)


class RequestService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit_request(self, data: PublicRequestCreate, admin_notes: Optional[str] = None) -> Request:
        """Create a new request in ``pending``; used by the public form and by admins."""
        request = Request(
            requester_name=data.requester.name,
            requester_phone=data.requester.phone,
            requester_age=data.requester.age,
            requester_district=data.requester.district,
            description=data.description,
            fields=[f.value for f in data.fields],
            appreciation=data.appreciation,
            urgency=data.urgency,
            service_type=data.service_type,
            estimated_duration=data.estimated_duration,
            admin_notes=admin_notes,
            status=RequestStatus.PENDING,
            follow_ups=[],
            is_merged=False,
        )
        self.db.add(request)
        await self.db.flush()
        await self.db.refresh(request)
        return request

    async def create_request(self, data: RequestCreate, actor: User) -> Request:
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以建立委托")
        return await self.submit_request(data, admin_notes=data.admin_notes)

    async def get_request(self, request_id: str) -> Request:
        result = await self.db.execute(
            select(Request).where(Request.id == request_id)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("委托", request_id)
        return request

    async def list_requests(
        self,
        status: Optional[RequestStatus] = None,
        include_merged: bool = False,
        page: int = 1,
        limit: int = 20,
        visible_statuses: Optional[Sequence[RequestStatus]] = None,
    ) -> Tuple[List[Request], int]:
        query = select(Request)

        if visible_statuses is not None:
            query = query.where(Request.status.in_(visible_statuses))

        if not include_merged:
            query = query.where(Request.is_merged.is_(False))
        if status:
            query = query.where(Request.status == status)

        # Count
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar()

        # Paginate, newest first
        query = query.order_by(Request.created_at.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        return items, total

    async def ensure_visible_to(self, request: Request, actor: User) -> None:
        """Volunteers may only open requests they applied to or that are taking applications."""
        if actor.role == UserRole.ADMIN:
            return
        if request.status in APPLYABLE_REQUEST_STATUSES and not request.is_merged:
            return

        result = await self.db.execute(
            select(Application.id).where(
                and_(
                    Application.request_id == request.id,
                    Application.volunteer_id == actor.id,
                )
            )
        )
        if result.scalar_one_or_none() is None:
            raise ForbiddenError("你未報名此委托")

    async def transition_request(
        self,
        request_id: str,
        new_status: RequestStatus,
        actor: User,
    ) -> Request:
        """Move a request to ``new_status`` and cascade to its approved applications."""
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以更改委托狀態")

        request = await self.get_request(request_id)
        await self._apply_transition(request, new_status)
        await self.db.flush()
        return request

    async def update_request(
        self,
        request_id: str,
        actor: User,
        **changes,
    ) -> Tuple[Request, RequestStatus]:
        """Apply an admin PATCH. Returns the request and its status before the update."""
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以修改委托")

        request = await self.get_request(request_id)
        old_status = request.status

        new_status = changes.pop("status", None)
        if new_status is not None and new_status != request.status:
            await self._apply_transition(request, new_status)

        if changes.get("fields") is not None:
            changes["fields"] = [getattr(f, "value", f) for f in changes["fields"]]

        for key, value in changes.items():
            if value is not None and hasattr(request, key):
                setattr(request, key, value)
        request.updated_at = utcnow()

        await self.db.flush()
        return request, old_status

    async def add_follow_up(self, request_id: str, actor: User, method: str, content: str) -> Request:
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以新增跟進記錄")

        request = await self.get_request(request_id)
        now = utcnow()
        follow_up = {
            "date": now.isoformat(),
            "method": method,
            "content": content,
            "admin_id": actor.id,
        }
        # JSON columns only track reassignment, never in-place mutation
        request.follow_ups = [*(request.follow_ups or []), follow_up]
        request.updated_at = now

        await self.db.flush()
        return request

    async def delete_request(self, request_id: str, actor: User) -> None:
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以刪除委托")

        request = await self.get_request(request_id)
        await self.db.execute(
            delete(Application).where(Application.request_id == request.id)
        )
        await self.db.delete(request)
        await self.db.flush()

    async def _apply_transition(self, request: Request, target: RequestStatus) -> List[Application]:
        if request.is_merged:
            raise ConflictError(
                "此委托已被合併，狀態不能再更改",
                details={"merged_with": request.merged_with},
            )
        ensure_request_transition(request.status, target)

        now = utcnow()
        request.status = target
        request.updated_at = now

        if target == RequestStatus.MATCHED and request.matched_at is None:
            request.matched_at = now
        if target == RequestStatus.COMPLETED:
            request.completed_at = now

        cascade_to = cascade_application_status(target)
        if cascade_to is None:
            return []
        return await self._cascade_to_applications(request, cascade_to, now)

    async def _cascade_to_applications(
        self,
        request: Request,
        cascade_to: ApplicationStatus,
        now: datetime,
    ) -> List[Application]:
        """Move every approved sibling application along with its request.

        Runs in the caller's transaction, so the request update and the
        application updates are committed (or rolled back) together.
        """
        result = await self.db.execute(
            select(Application).where(
                and_(
                    Application.request_id == request.id,
                    Application.status == ApplicationStatus.APPROVED,
                )
            )
        )
        applications = list(result.scalars().all())

        for application in applications:
            application.status = cascade_to
            application.updated_at = now
            if cascade_to == ApplicationStatus.COMPLETED:
                application.completed_at = now

        if cascade_to == ApplicationStatus.COMPLETED and applications:
            await self.db.execute(
                update(User)
                .where(User.id.in_([a.volunteer_id for a in applications]))
                .values(completed_tasks=User.completed_tasks + 1)
            )

        logger.info(
            "Request %s -> %s cascaded %d application(s) to %s",
            request.id,
            request.status.value,
            len(applications),
            cascade_to.value,
        )
        return applications
