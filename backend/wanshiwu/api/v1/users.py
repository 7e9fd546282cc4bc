from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wanshiwu.database import get_db
from wanshiwu.api.deps import get_current_user, get_identity_claims
from wanshiwu.models.user import User
from wanshiwu.schemas.user import VolunteerRegister, UserUpdate, UserResponse
from wanshiwu.services.user_service import UserService

router = APIRouter(prefix="/me", tags=["我的帳戶 - Me"])


@router.get("", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """我的資料"""
    return UserResponse.model_validate(current_user)


@router.post("", response_model=UserResponse, status_code=201)
async def register_me(
    body: VolunteerRegister,
    claims: dict = Depends(get_identity_claims),
    db: AsyncSession = Depends(get_db),
):
    """登記成為義工 (登入後首次使用)"""
    service = UserService(db)
    user = await service.register_volunteer(claims["sub"], body, email=claims.get("email"))
    return UserResponse.model_validate(user)


@router.patch("", response_model=UserResponse)
async def update_me(
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """更新我的資料"""
    service = UserService(db)
    user = await service.update_profile(current_user, **body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)
