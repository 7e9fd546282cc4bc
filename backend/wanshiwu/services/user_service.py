from typing import Optional, Tuple, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.core.constants import UserRole, UserStatus
from wanshiwu.core.exceptions import NotFoundError, DuplicateError, ValidationError
from wanshiwu.database import utcnow
from wanshiwu.models.user import User
from wanshiwu.schemas.user import VolunteerRegister


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def register_volunteer(self, subject_id: str, data: VolunteerRegister, email: Optional[str] = None) -> User:
        """Create the role record for a freshly authenticated identity."""
        if await self.get_user(subject_id):
            raise DuplicateError("此帳戶已經登記")

        user = User(
            id=subject_id,
            email=(data.email or email or None),
            role=UserRole.VOLUNTEER,
            status=UserStatus.PENDING,
            display_name=data.display_name,
            phone=data.phone,
            age=data.age,
            fields=[f.value for f in data.fields],
            skills=data.skills,
            availability=data.availability,
            target_audience=data.target_audience,
            goals=data.goals,
            completed_tasks=0,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def update_profile(self, user: User, **changes) -> User:
        if changes.get("fields") is not None:
            changes["fields"] = [getattr(f, "value", f) for f in changes["fields"]]
        for key, value in changes.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        user.updated_at = utcnow()
        await self.db.flush()
        return user

    async def list_volunteers(
        self,
        status: Optional[UserStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        query = select(User).where(User.role == UserRole.VOLUNTEER)
        if status:
            query = query.where(User.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar()

        query = query.order_by(User.created_at.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_volunteer(self, volunteer_id: str) -> User:
        user = await self.get_user(volunteer_id)
        if not user or user.role != UserRole.VOLUNTEER:
            raise NotFoundError("義工", volunteer_id)
        return user

    async def set_volunteer_status(
        self,
        volunteer_id: str,
        status: UserStatus,
        notes: Optional[str] = None,
    ) -> Tuple[User, UserStatus]:
        """Interview outcome: approval stores interview notes, rejection a reason."""
        volunteer = await self.get_volunteer(volunteer_id)
        old_status = volunteer.status

        if status == UserStatus.PENDING and old_status != UserStatus.PENDING:
            raise ValidationError("不能將義工改回待審核", field="status")

        now = utcnow()
        volunteer.status = status
        if notes:
            if status == UserStatus.APPROVED:
                volunteer.interview_notes = notes
                volunteer.interview_date = now
            elif status == UserStatus.REJECTED:
                volunteer.rejection_reason = notes
        volunteer.updated_at = now

        await self.db.flush()
        return volunteer, old_status
