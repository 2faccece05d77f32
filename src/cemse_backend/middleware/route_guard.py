"""
Request-level authorization gate.

Every request path is classified into one of the route classes below. Public
paths pass untouched, auth pages bounce signed-in users to the dashboard, and
protected pages and APIs need a session that resolves to a profile, with the
users area further restricted to admins. Pages are answered with redirects,
APIs with JSON errors.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from cemse_backend.api.exceptions import error_response
from cemse_backend.auth.sessions import SessionProvider, get_session_provider
from cemse_backend.database import SessionLocal
from cemse_backend.permissions.auth import find_profile_by_session_id
from cemse_backend.permissions.roles import is_admin

logger = logging.getLogger(__name__)

SIGN_IN_PATH = "/sign-in"
DASHBOARD_PATH = "/dashboard"

PASS_THROUGH_PREFIXES = ("/api/auth", "/auth/callback")
AUTH_PAGE_PREFIXES = ("/sign-in", "/sign-up", "/forgot-password", "/reset-password", "/verify-email")
PROTECTED_PAGE_PREFIXES = ("/dashboard", "/profile", "/users")
PROTECTED_API_PREFIXES = ("/api/profile", "/api/files", "/api/users")
ADMIN_ONLY_PREFIXES = ("/users", "/api/users")

EXCLUDED_PREFIXES = ("/static", "/favicon.ico", "/docs", "/redoc", "/openapi.json")
EXCLUDED_EXTENSIONS = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")


class RouteClass(str, Enum):
    EXCLUDED = "excluded"
    PUBLIC = "public"
    AUTH_PAGE = "auth-page"
    PROTECTED_PAGE = "protected-page"
    PROTECTED_API = "protected-api"


class GuardAction(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"
    DENY = "deny"


@dataclass
class GuardDecision:
    action: GuardAction
    status_code: int = status.HTTP_200_OK
    location: Optional[str] = None
    error: Optional[str] = None
    session: Any = None
    profile: Any = None

    @classmethod
    def allow(cls, session: Any = None, profile: Any = None) -> "GuardDecision":
        return cls(GuardAction.ALLOW, session=session, profile=profile)

    @classmethod
    def redirect(cls, path: str, **params: str) -> "GuardDecision":
        location = f"{path}?{urlencode(params)}" if params else path
        return cls(GuardAction.REDIRECT, status.HTTP_307_TEMPORARY_REDIRECT, location=location)

    @classmethod
    def deny(cls, status_code: int, error: str) -> "GuardDecision":
        return cls(GuardAction.DENY, status_code, error=error)


def matches_prefix(path: str, prefix: str) -> bool:
    """Segment-aware prefix match: /users matches /users/1 but not /usersettings."""
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _matches_any(path: str, prefixes) -> bool:
    return any(matches_prefix(path, prefix) for prefix in prefixes)


def is_excluded_path(path: str) -> bool:
    """Static assets. Image extensions only count outside the protected areas."""
    if _matches_any(path, EXCLUDED_PREFIXES):
        return True
    if _matches_any(path, PROTECTED_PAGE_PREFIXES + PROTECTED_API_PREFIXES):
        return False
    return path.lower().endswith(EXCLUDED_EXTENSIONS)


def classify_path(path: str) -> RouteClass:

    if is_excluded_path(path):
        return RouteClass.EXCLUDED

    if path == "/" or _matches_any(path, PASS_THROUGH_PREFIXES):
        return RouteClass.PUBLIC

    if _matches_any(path, AUTH_PAGE_PREFIXES):
        return RouteClass.AUTH_PAGE

    if _matches_any(path, PROTECTED_API_PREFIXES):
        return RouteClass.PROTECTED_API

    if _matches_any(path, PROTECTED_PAGE_PREFIXES):
        return RouteClass.PROTECTED_PAGE

    return RouteClass.PUBLIC


SessionLoader = Callable[[], Awaitable[Any]]
ProfileLoader = Callable[[Any], Awaitable[Any]]


async def evaluate_route(path: str, load_session: SessionLoader, load_profile: ProfileLoader) -> GuardDecision:
    """
    Decide allow / redirect / deny for a request path.

    ``load_session`` resolves the request's session (or None) and
    ``load_profile`` the profile for that session (or None). The profile is
    only looked up after a session was found. Neither is called for paths
    that need no session.
    """

    route_class = classify_path(path)

    if route_class in (RouteClass.EXCLUDED, RouteClass.PUBLIC):
        return GuardDecision.allow()

    if route_class == RouteClass.AUTH_PAGE:
        try:
            session = await load_session()
        except Exception as e:
            logger.error(f"Session check failed on auth page {path}: {e}")
            return GuardDecision.allow()

        if session is not None:
            return GuardDecision.redirect(DASHBOARD_PATH)
        return GuardDecision.allow()

    is_api = route_class == RouteClass.PROTECTED_API

    try:
        session = await load_session()

        if session is None:
            logger.debug(f"No session for protected path {path}")
            if is_api:
                return GuardDecision.deny(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
            return GuardDecision.redirect(SIGN_IN_PATH, redirect=path)

        profile = await load_profile(session)

        if profile is None:
            logger.debug(f"Session without profile for protected path {path}")
            if is_api:
                return GuardDecision.deny(status.HTTP_401_UNAUTHORIZED, "Invalid session")
            return GuardDecision.redirect(SIGN_IN_PATH, error="invalid_session")

    except Exception as e:
        logger.error(f"Route guard failed to resolve session for {path}: {e}")
        return GuardDecision.redirect(SIGN_IN_PATH, error="session_error")

    if _matches_any(path, ADMIN_ONLY_PREFIXES) and not is_admin(getattr(profile, "role", None)):
        logger.debug(f"Denied non-admin access to {path}")
        if is_api:
            return GuardDecision.deny(status.HTTP_403_FORBIDDEN, "Unauthorized")
        return GuardDecision.redirect(DASHBOARD_PATH, error="unauthorized")

    return GuardDecision.allow(session=session, profile=profile)


async def load_profile_from_database(session) -> Any:
    db = SessionLocal()
    try:
        return find_profile_by_session_id(db, session.user_id)
    finally:
        db.close()


class RouteGuardMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, session_provider: Optional[SessionProvider] = None,
                 profile_loader: Optional[ProfileLoader] = None):
        super().__init__(app)
        self.session_provider = session_provider
        self.profile_loader = profile_loader or load_profile_from_database

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        provider = self.session_provider or get_session_provider()

        async def load_session():
            return await provider.get_session(request)

        decision = await evaluate_route(path, load_session, self.profile_loader)

        if decision.action == GuardAction.REDIRECT:
            return RedirectResponse(decision.location, status_code=decision.status_code)

        if decision.action == GuardAction.DENY:
            return error_response(decision.status_code, decision.error)

        if decision.session is not None:
            request.state.session = decision.session
            request.state.profile = decision.profile

        return await call_next(request)
