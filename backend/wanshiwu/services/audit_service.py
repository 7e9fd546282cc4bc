import logging
from datetime import datetime
from typing import Optional, Tuple, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.core.constants import TargetType
from wanshiwu.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        actor_id: str,
        action: str,
        target_type: TargetType,
        target_id: str,
        description: str,
        changes: Optional[dict] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            actor_id=actor_id,
            action=action,
            target_type=target_type,
            target_id=target_id,
            description=description,
            changes=changes,
        )
        # savepoint: a failed insert must not poison the caller's transaction
        async with self.db.begin_nested():
            self.db.add(entry)
        return entry

    async def record(self, *args, **kwargs) -> Optional[ActivityLog]:
        """Fire-and-forget wrapper around :meth:`log` used after a mutation.

        Logging failures are reported and discarded; they never turn a
        successful mutation into an error response.
        """
        try:
            return await self.log(*args, **kwargs)
        except Exception as e:
            logger.warning(
                "Failed to write activity log action=%s target=%s: %s",
                kwargs.get("action"),
                kwargs.get("target_id"),
                e,
            )
            return None

    async def list_logs(
        self,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[ActivityLog], int]:
        query = select(ActivityLog)

        if actor_id:
            query = query.where(ActivityLog.actor_id == actor_id)
        if action:
            query = query.where(ActivityLog.action == action)
        if start_date:
            query = query.where(ActivityLog.created_at >= start_date)
        if end_date:
            query = query.where(ActivityLog.created_at <= end_date)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar()

        query = query.order_by(ActivityLog.created_at.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        items = list(result.scalars().all())

        return items, total
