from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from wanshiwu.config import settings
from wanshiwu.core.constants import MASKED_VALUE, TRACKING_NUMBER_LENGTH


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        return None


def generate_tracking_number(request_id: str) -> str:
    """Short human-readable reference handed back to anonymous requesters."""
    return request_id.replace("-", "")[:TRACKING_NUMBER_LENGTH].upper()


def mask_requester(requester: dict) -> dict:
    return {key: MASKED_VALUE for key in requester}
