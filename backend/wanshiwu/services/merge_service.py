import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.core.constants import UserRole
from wanshiwu.core.exceptions import (
    NotFoundError,
    ForbiddenError,
    ConflictError,
    ValidationError,
)
from wanshiwu.database import utcnow
from wanshiwu.models.request import Request
from wanshiwu.models.user import User

logger = logging.getLogger(__name__)


class MergeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def merge_requests(
        self,
        main_request_id: str,
        merge_request_ids: List[str],
        actor: User,
    ) -> Request:
        """Fold duplicate requests into ``main_request_id``.

        Every check runs before the first write, so a rejected merge leaves
        all requests untouched. Merged requests drop out of default listings
        and their status is frozen; there is no unmerge.
        """
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("只有管理員可以合併委托")

        # keep caller order, drop repeats
        merge_ids = list(dict.fromkeys(merge_request_ids or []))
        if not merge_ids:
            raise ValidationError("缺少要合併的委托", field="merge_request_ids")
        if main_request_id in merge_ids:
            raise ValidationError("主委托不能合併到自己", field="merge_request_ids")

        result = await self.db.execute(
            select(Request).where(Request.id.in_([main_request_id, *merge_ids]))
        )
        by_id = {r.id: r for r in result.scalars().all()}

        main = by_id.get(main_request_id)
        if not main:
            raise NotFoundError("委托", main_request_id)
        if main.is_merged:
            raise ConflictError(
                "主委托已被合併到其他委托",
                details={"id": main.id, "merged_with": main.merged_with},
            )

        duplicates = []
        for request_id in merge_ids:
            duplicate = by_id.get(request_id)
            if not duplicate:
                raise NotFoundError("委托", request_id)
            if duplicate.is_merged:
                raise ConflictError(
                    "委托已被合併",
                    details={"id": duplicate.id, "merged_with": duplicate.merged_with},
                )
            if isinstance(duplicate.merged_with, list) and duplicate.merged_with:
                # main of an earlier merge
                raise ConflictError(
                    "委托已合併了其他委托，不能再被合併",
                    details={"id": duplicate.id, "merged_with": duplicate.merged_with},
                )
            duplicates.append(duplicate)

        now = utcnow()
        already_absorbed = main.merged_with if isinstance(main.merged_with, list) else []
        main.merged_with = list(dict.fromkeys([*already_absorbed, *merge_ids]))
        main.updated_at = now
        for duplicate in duplicates:
            duplicate.is_merged = True
            duplicate.merged_with = main.id
            duplicate.updated_at = now

        await self.db.flush()
        logger.info("Merged %d request(s) into %s", len(duplicates), main.id)
        return main
