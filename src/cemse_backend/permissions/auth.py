"""
Request authentication for API handlers.

The route guard already resolves session and profile for guarded paths and
leaves them on ``request.state``. Handlers outside the guarded prefixes
(schools, cases, audit logs, password change) resolve them here the same way,
so every handler sees one ``Principal`` regardless of the path it lives on.
"""

import logging
from typing import Annotated, Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cemse_backend.auth.sessions import SessionData, SessionProvider, get_session_provider
from cemse_backend.api.exceptions import ForbiddenException, UnauthorizedException
from cemse_backend.database import get_db
from cemse_backend.model.auth import Profile
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import Role

logger = logging.getLogger(__name__)


def find_profile_by_session_id(db: Session, auth_user_id: Optional[str]) -> Optional[Profile]:
    """Profile lookup keyed by the session's AuthUser id. Deleted profiles never resolve."""
    if not auth_user_id:
        return None
    return (
        db.query(Profile)
        .filter(Profile.auth_user_id == auth_user_id, Profile.is_deleted == False)
        .first()
    )


async def get_current_session(
    request: Request,
    provider: Annotated[SessionProvider, Depends(get_session_provider)]
) -> SessionData:

    session = getattr(request.state, "session", None)
    if session is not None:
        return session

    session = await provider.get_session(request)
    if session is None:
        raise UnauthorizedException("Authentication required")

    request.state.session = session
    return session


async def get_current_principal(
    request: Request,
    session: Annotated[SessionData, Depends(get_current_session)],
    db: Annotated[Session, Depends(get_db)]
) -> Principal:
    """
    Main dependency for getting the current authenticated principal.
    A session whose profile is gone is an invalid session.
    """

    profile = getattr(request.state, "profile", None)

    if profile is None or getattr(profile, "auth_user_id", None) != session.user_id:
        profile = find_profile_by_session_id(db, session.user_id)

    if profile is None:
        logger.debug(f"Session for user {session.user_id} has no profile")
        raise UnauthorizedException("Invalid session")

    request.state.profile = profile
    return Principal.from_profile(profile)


def require_role(required_role: Role):

    async def dependency(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
        principal.require(required_role)
        return principal

    return dependency


async def require_admin(principal: Annotated[Principal, Depends(get_current_principal)]) -> Principal:
    if not principal.is_admin:
        raise ForbiddenException("Admin access required")
    return principal
