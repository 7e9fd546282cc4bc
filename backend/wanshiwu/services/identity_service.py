import logging
import time
from typing import Optional

import httpx
from jose import JWTError, jwt

from wanshiwu.config import settings
from wanshiwu.core.exceptions import UnauthorizedError, ServiceUnavailableError
from wanshiwu.core.security import decode_token

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"


class IdentityProvider:
    """Turns a bearer credential into verified claims.

    ``local`` verifies HS256 tokens signed with ``JWT_SECRET_KEY``;
    ``firebase`` verifies Firebase Auth ID tokens against Google's JWKS.
    The returned claims always carry the subject under ``sub``.
    """

    def __init__(self):
        self._jwks: Optional[dict] = None
        self._jwks_fetched_at: float = 0.0

    async def verify(self, token: str) -> dict:
        if settings.AUTH_PROVIDER == "firebase":
            return await self._verify_firebase(token)
        return self._verify_local(token)

    def _verify_local(self, token: str) -> dict:
        payload = decode_token(token)
        if not payload or payload.get("type") != "access" or not payload.get("sub"):
            raise UnauthorizedError("登入憑證無效或已過期")
        return payload

    async def _verify_firebase(self, token: str) -> dict:
        if not settings.FIREBASE_PROJECT_ID:
            logger.error("AUTH_PROVIDER=firebase but FIREBASE_PROJECT_ID is not set")
            raise ServiceUnavailableError()

        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise UnauthorizedError("登入憑證無效或已過期")

        key = await self._signing_key(header.get("kid"))
        if key is None:
            raise UnauthorizedError("登入憑證無效或已過期")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=settings.FIREBASE_PROJECT_ID,
                issuer=f"{FIREBASE_ISSUER_PREFIX}{settings.FIREBASE_PROJECT_ID}",
                options={"verify_at_hash": False},
            )
        except JWTError:
            raise UnauthorizedError("登入憑證無效或已過期")

        claims.setdefault("sub", claims.get("user_id"))
        if not claims.get("sub"):
            raise UnauthorizedError()
        return claims

    async def _signing_key(self, kid: Optional[str]) -> Optional[dict]:
        jwks = await self._get_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        # keys rotate; refetch once before rejecting
        jwks = await self._get_jwks(force=True)
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        return None

    async def _get_jwks(self, force: bool = False) -> dict:
        age = time.monotonic() - self._jwks_fetched_at
        if self._jwks is not None and not force and age < settings.JWKS_CACHE_SECONDS:
            return self._jwks

        try:
            async with httpx.AsyncClient(timeout=settings.IDENTITY_TIMEOUT_SECONDS) as client:
                response = await client.get(settings.FIREBASE_JWKS_URL)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch Firebase signing keys: {e}")
            raise ServiceUnavailableError()

        self._jwks = response.json()
        self._jwks_fetched_at = time.monotonic()
        return self._jwks


identity_provider = IdentityProvider()
