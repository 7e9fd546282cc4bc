import logging
from datetime import datetime
from typing import Optional, Tuple, List

from sqlalchemy import select, func, update, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.core.constants import (
    ApplicationStatus,
    RequestStatus,
    UserRole,
    UserStatus,
    APPLYABLE_REQUEST_STATUSES,
)
from wanshiwu.core.exceptions import (
    NotFoundError,
    ForbiddenError,
    DuplicateError,
    ConflictError,
    ValidationError,
)
from wanshiwu.core.workflow import (
    ensure_application_transition,
    is_terminal_application,
    is_terminal_request,
    MATCHABLE_REQUEST_STATUSES,
)
from wanshiwu.database import utcnow
from wanshiwu.models.application import Application
from wanshiwu.models.request import Request
from wanshiwu.models.user import User
from wanshiwu.services.request_service import RequestService

logger = logging.getLogger(__name__)

VOLUNTEER_EDITABLE_FIELDS = ("message", "available_time")


class ApplicationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_application(self, application_id: str) -> Application:
        result = await self.db.execute(
            select(Application).where(Application.id == application_id)
        )
        application = result.scalar_one_or_none()
        if not application:
            raise NotFoundError("報名記錄", application_id)
        return application

    async def get_application_for(self, application_id: str, actor: User) -> Application:
        application = await self.get_application(application_id)
        if actor.role != UserRole.ADMIN and application.volunteer_id != actor.id:
            raise ForbiddenError("不能查看其他義工的報名")
        return application

    async def list_applications(
        self,
        actor: User,
        request_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        status: Optional[ApplicationStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Application], int]:
        if actor.role != UserRole.ADMIN:
            if volunteer_id and volunteer_id != actor.id:
                raise ForbiddenError("不能查看其他義工的報名")
            volunteer_id = actor.id

        query = select(Application)
        if request_id:
            query = query.where(Application.request_id == request_id)
        if volunteer_id:
            query = query.where(Application.volunteer_id == volunteer_id)
        if status:
            query = query.where(Application.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar()

        query = query.order_by(Application.created_at.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        return items, total

    async def create_application(
        self,
        actor: User,
        request_id: str,
        volunteer_id: Optional[str] = None,
        message: Optional[str] = None,
        available_time: Optional[str] = None,
    ) -> Application:
        """A volunteer applies to a request; one application per (request, volunteer)."""
        if actor.role != UserRole.VOLUNTEER:
            raise ForbiddenError("只有義工可以報名委托")
        if volunteer_id and volunteer_id != actor.id:
            raise ForbiddenError("不能代其他義工報名")
        if actor.status != UserStatus.APPROVED:
            raise ForbiddenError("你的義工帳戶尚未通過審核")

        request = await RequestService(self.db).get_request(request_id)
        if request.is_merged or request.status not in APPLYABLE_REQUEST_STATUSES:
            raise ValidationError("此委托目前不接受報名", field="request_id")

        existing = await self.db.execute(
            select(Application).where(
                and_(
                    Application.request_id == request_id,
                    Application.volunteer_id == actor.id,
                )
            )
        )
        duplicate = existing.scalar_one_or_none()
        if duplicate:
            raise DuplicateError(
                "你已報名此委托",
                details={"existing_application_id": duplicate.id},
            )

        application = Application(
            request_id=request_id,
            volunteer_id=actor.id,
            volunteer_name=actor.display_name,
            status=ApplicationStatus.PENDING,
            message=message,
            available_time=available_time,
        )
        self.db.add(application)
        try:
            await self.db.flush()
        except IntegrityError:
            # lost a race against a concurrent identical application
            await self.db.rollback()
            raise DuplicateError("你已報名此委托")

        await self.db.refresh(application)
        return application

    async def transition_application(
        self,
        application_id: str,
        new_status: ApplicationStatus,
        actor: User,
    ) -> Application:
        """Admin approves/rejects/completes an application.

        Approval stamps ``matched_at`` and advances the parent request to
        ``matched`` when it is still open or published; otherwise the parent
        only receives a ``matched_at`` if it has none yet.
        """
        application = await self.get_application(application_id)
        self._ensure_can_change_status(application, actor)
        await self._apply_transition(application, new_status)
        await self.db.flush()
        return application

    async def update_application(
        self,
        application_id: str,
        actor: User,
        **changes,
    ) -> Tuple[Application, ApplicationStatus]:
        """Apply a PATCH. Returns the application and its status before the update."""
        application = await self.get_application(application_id)
        old_status = application.status

        is_admin = actor.role == UserRole.ADMIN
        if not is_admin and application.volunteer_id != actor.id:
            raise ForbiddenError("不能修改其他義工的報名")

        new_status = changes.pop("status", None)
        if new_status is not None:
            self._ensure_can_change_status(application, actor)
            await self._apply_transition(application, new_status)

        if not is_admin:
            if changes.get("admin_notes") is not None:
                raise ForbiddenError("義工不能修改管理員備註")
            if application.status != ApplicationStatus.PENDING:
                raise ValidationError("只可以修改待審核的報名")

        for key, value in changes.items():
            if value is not None and hasattr(application, key):
                setattr(application, key, value)
        application.updated_at = utcnow()

        await self.db.flush()
        return application, old_status

    async def withdraw_application(self, application_id: str, actor: User) -> Application:
        """Hard-delete an application: owners only while pending, admins always."""
        application = await self.get_application(application_id)

        if actor.role != UserRole.ADMIN:
            if application.volunteer_id != actor.id:
                raise ForbiddenError("不能撤回其他義工的報名")
            if application.status != ApplicationStatus.PENDING:
                raise ValidationError("只可以撤回待審核的報名", field="status")

        await self.db.delete(application)
        await self.db.flush()
        return application

    def _ensure_can_change_status(self, application: Application, actor: User) -> None:
        if actor.role == UserRole.ADMIN:
            return
        if application.volunteer_id != actor.id:
            raise ForbiddenError("不能修改其他義工的報名")
        raise ForbiddenError("只有管理員可以審批報名")

    async def _apply_transition(self, application: Application, target: ApplicationStatus) -> None:
        if target == application.status:
            return
        if is_terminal_application(application.status):
            raise ConflictError(
                "此報名已完成，狀態不能再更改",
                details={"status": application.status.value},
            )
        ensure_application_transition(application.status, target)

        parent = None
        if target == ApplicationStatus.APPROVED:
            parent = await RequestService(self.db).get_request(application.request_id)
            if parent.is_merged:
                raise ConflictError(
                    "此委托已被合併，不能再配對義工",
                    details={"request_id": parent.id, "merged_with": parent.merged_with},
                )
            if is_terminal_request(parent.status):
                raise ConflictError(
                    "此委托已結束，不能再配對義工",
                    details={"request_id": parent.id, "status": parent.status.value},
                )

        now = utcnow()
        application.status = target
        application.updated_at = now

        if target == ApplicationStatus.APPROVED:
            application.matched_at = now
            self._advance_parent(parent, now)
        elif target == ApplicationStatus.COMPLETED:
            application.completed_at = now
            await self.db.execute(
                update(User)
                .where(User.id == application.volunteer_id)
                .values(completed_tasks=User.completed_tasks + 1)
            )

    def _advance_parent(self, parent: Request, now: datetime) -> None:
        if parent.status in MATCHABLE_REQUEST_STATUSES:
            parent.status = RequestStatus.MATCHED
            if parent.matched_at is None:
                parent.matched_at = now
            parent.updated_at = now
            logger.info("Request %s matched via application approval", parent.id)
        elif parent.matched_at is None and parent.status != RequestStatus.MATCHED:
            # out-of-order admin actions: record the match time only
            parent.matched_at = now
            parent.updated_at = now
