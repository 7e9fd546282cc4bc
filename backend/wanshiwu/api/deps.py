from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.database import get_db
from wanshiwu.core.exceptions import UnauthorizedError, ForbiddenError
from wanshiwu.core.constants import UserRole, UserStatus
from wanshiwu.models.user import User
from wanshiwu.services.identity_service import identity_provider
from wanshiwu.services.user_service import UserService

security = HTTPBearer(auto_error=False)


async def get_identity_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """已驗證的身份 (未必已有角色記錄)"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    return await identity_provider.verify(credentials.credentials)


async def get_current_user(
    claims: dict = Depends(get_identity_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserService(db).get_user(claims["sub"])

    if not user:
        raise UnauthorizedError("用戶不存在，請先完成登記")

    if user.status == UserStatus.SUSPENDED:
        raise ForbiddenError("你的帳戶已被暫停")

    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError("需要管理員權限")
    return current_user
