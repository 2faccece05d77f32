import json
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field
from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param

from cemse_backend.redis_cache import get_redis_client
from cemse_backend.settings import settings

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"


class SessionData(BaseModel):
    token: str = Field(description="Opaque session token")
    user_id: str = Field(description="Authenticated AuthUser id")
    email: str = Field(description="Email the session was issued for")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def extract_session_token(request: Request) -> Optional[str]:
    """Session cookie first, then a Bearer authorization header."""

    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("Authorization")
    if not authorization:
        return None

    scheme, param = get_authorization_scheme_param(authorization)
    if scheme.lower() == "bearer" and param:
        return param

    return None


class SessionProvider:
    """Issues, resolves and destroys opaque session tokens kept in the session cache."""

    def __init__(self, ttl: Optional[int] = None):
        self.ttl = ttl or settings.SESSION_TTL

    async def create_session(self, user_id: str, email: str) -> SessionData:
        cache = await get_redis_client()
        session = SessionData(token=secrets.token_urlsafe(32), user_id=user_id, email=email)
        await cache.set(_session_key(session.token), session.model_dump_json(), ttl=self.ttl)
        logger.info(f"Created session for user {user_id}")
        return session

    async def lookup(self, token: Optional[str]) -> Optional[SessionData]:
        if not token:
            return None

        cache = await get_redis_client()
        raw = await cache.get(_session_key(token))

        if not raw:
            return None

        try:
            session = SessionData.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValueError):
            logger.warning("Discarding malformed session entry")
            await cache.delete(_session_key(token))
            return None

        # Sliding expiration
        await cache.set(_session_key(token), raw, ttl=self.ttl)
        return session

    async def get_session(self, request: Request) -> Optional[SessionData]:
        return await self.lookup(extract_session_token(request))

    async def destroy_session(self, token: Optional[str]) -> bool:
        if not token:
            return False
        cache = await get_redis_client()
        deleted = await cache.delete(_session_key(token))
        return bool(deleted)


session_provider = SessionProvider()


def get_session_provider() -> SessionProvider:
    return session_provider
