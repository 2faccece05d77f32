"""
Route guard tests.

The middleware is mounted on a small app whose endpoints just answer "ok",
with stub session and profile loaders, so each test controls exactly which
session and profile the guard sees.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from cemse_backend.auth.sessions import SessionData
from cemse_backend.middleware.route_guard import (
    GuardAction,
    RouteClass,
    RouteGuardMiddleware,
    classify_path,
    evaluate_route,
    is_excluded_path,
    matches_prefix,
)

SESSION_HEADER = "X-Test-Session"

PROFILES = {
    "user-1": SimpleNamespace(id="p-user", auth_user_id="user-1", role="USER"),
    "admin-1": SimpleNamespace(id="p-admin", auth_user_id="admin-1", role="ADMIN"),
    "super-1": SimpleNamespace(id="p-super", auth_user_id="super-1", role="SUPER_ADMIN"),
    "director-1": SimpleNamespace(id="p-director", auth_user_id="director-1", role="DIRECTOR"),
}


class StubSessionProvider:

    async def get_session(self, request: Request):
        user_id = request.headers.get(SESSION_HEADER)
        if user_id is None:
            return None
        if user_id == "explode":
            raise RuntimeError("session store unavailable")
        return SessionData(token=f"token-{user_id}", user_id=user_id, email=f"{user_id}@example.com")


async def stub_profile_loader(session):
    if session.user_id == "broken":
        raise RuntimeError("database unavailable")
    return PROFILES.get(session.user_id)


def build_app() -> FastAPI:
    guarded = FastAPI()
    guarded.add_middleware(
        RouteGuardMiddleware,
        session_provider=StubSessionProvider(),
        profile_loader=stub_profile_loader
    )

    paths = [
        "/", "/sign-in", "/sign-up", "/dashboard", "/profile", "/users", "/users/create",
        "/usersettings", "/api/users", "/api/profile", "/api/files/upload", "/api/auth/sign-in",
        "/about", "/logo.png", "/users/export.png", "/dashboard/logo.svg", "/api/users/avatar.jpg",
    ]

    def make_endpoint():
        async def endpoint(request: Request):
            profile = getattr(request.state, "profile", None)
            return {"ok": True, "role": getattr(profile, "role", None)}
        return endpoint

    for path in paths:
        guarded.add_api_route(path, make_endpoint(), methods=["GET"])

    return guarded


@pytest.fixture
def guard_client():
    return TestClient(build_app())


def get(client, path, user_id=None):
    headers = {SESSION_HEADER: user_id} if user_id else {}
    return client.get(path, headers=headers, follow_redirects=False)


class TestClassification:

    @pytest.mark.parametrize("path,expected", [
        ("/", RouteClass.PUBLIC),
        ("/api/auth/sign-in", RouteClass.PUBLIC),
        ("/auth/callback", RouteClass.PUBLIC),
        ("/about", RouteClass.PUBLIC),
        ("/sign-in", RouteClass.AUTH_PAGE),
        ("/verify-email", RouteClass.AUTH_PAGE),
        ("/dashboard", RouteClass.PROTECTED_PAGE),
        ("/users/42", RouteClass.PROTECTED_PAGE),
        ("/api/users", RouteClass.PROTECTED_API),
        ("/api/files/delete", RouteClass.PROTECTED_API),
        ("/api/schools", RouteClass.PUBLIC),
        ("/static/app.js", RouteClass.EXCLUDED),
        ("/favicon.ico", RouteClass.EXCLUDED),
        ("/images/logo.SVG", RouteClass.EXCLUDED),
        ("/openapi.json", RouteClass.EXCLUDED),
    ])
    def test_classify_path(self, path, expected):
        assert classify_path(path) == expected

    def test_prefix_matching_is_segment_aware(self):
        assert matches_prefix("/users", "/users")
        assert matches_prefix("/users/1", "/users")
        assert not matches_prefix("/usersettings", "/users")
        assert classify_path("/usersettings") == RouteClass.PUBLIC
        assert classify_path("/dashboards") == RouteClass.PUBLIC

    def test_excluded_paths(self):
        assert is_excluded_path("/photo.jpeg")
        assert not is_excluded_path("/dashboard")

    @pytest.mark.parametrize("path,expected", [
        ("/users/export.png", RouteClass.PROTECTED_PAGE),
        ("/dashboard/logo.svg", RouteClass.PROTECTED_PAGE),
        ("/api/users/avatar.jpg", RouteClass.PROTECTED_API),
        ("/api/files/me.PNG", RouteClass.PROTECTED_API),
    ])
    def test_image_extensions_do_not_unlock_protected_areas(self, path, expected):
        assert not is_excluded_path(path)
        assert classify_path(path) == expected


class TestAnonymousRequests:

    def test_protected_page_redirects_to_sign_in(self, guard_client):
        response = get(guard_client, "/dashboard")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?redirect=%2Fdashboard"

    def test_redirect_carries_original_path(self, guard_client):
        response = get(guard_client, "/users/create")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?redirect=%2Fusers%2Fcreate"

    def test_image_path_in_users_area_redirects_to_sign_in(self, guard_client):
        response = get(guard_client, "/users/export.png")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?redirect=%2Fusers%2Fexport.png"

        response = get(guard_client, "/api/users/avatar.jpg")
        assert response.status_code == 401

    def test_protected_api_returns_401(self, guard_client):
        response = get(guard_client, "/api/profile")
        assert response.status_code == 401
        assert "error" in response.json()
        assert "location" not in response.headers

    @pytest.mark.parametrize("path", ["/", "/about", "/api/auth/sign-in", "/sign-in", "/usersettings", "/logo.png"])
    def test_public_paths_pass(self, guard_client, path):
        response = get(guard_client, path)
        assert response.status_code == 200
        assert response.json()["ok"] is True


class TestAuthPages:

    def test_signed_in_user_is_sent_to_dashboard(self, guard_client):
        response = get(guard_client, "/sign-in", "user-1")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard"

    def test_session_error_on_auth_page_serves_page(self, guard_client):
        response = get(guard_client, "/sign-up", "explode")
        assert response.status_code == 200


class TestSignedInRequests:

    def test_user_reaches_dashboard_and_profile(self, guard_client):
        assert get(guard_client, "/dashboard", "user-1").status_code == 200
        assert get(guard_client, "/profile", "user-1").status_code == 200
        assert get(guard_client, "/api/files/upload", "user-1").status_code == 200

    def test_profile_is_attached_to_request(self, guard_client):
        response = get(guard_client, "/api/profile", "admin-1")
        assert response.json()["role"] == "ADMIN"

    def test_user_is_kept_out_of_users_page(self, guard_client):
        response = get(guard_client, "/users", "user-1")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard?error=unauthorized"

    def test_user_is_kept_out_of_image_paths_in_users_area(self, guard_client):
        response = get(guard_client, "/users/export.png", "user-1")
        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard?error=unauthorized"

        assert get(guard_client, "/api/users/avatar.jpg", "user-1").status_code == 403
        assert get(guard_client, "/dashboard/logo.svg", "user-1").status_code == 200

    def test_school_staff_is_kept_out_of_users_area(self, guard_client):
        assert get(guard_client, "/users", "director-1").status_code == 307
        assert get(guard_client, "/api/users", "director-1").status_code == 403

    def test_user_gets_403_on_users_api(self, guard_client):
        response = get(guard_client, "/api/users", "user-1")
        assert response.status_code == 403
        assert "error" in response.json()

    @pytest.mark.parametrize("user_id", ["admin-1", "super-1"])
    def test_admins_reach_users_area(self, guard_client, user_id):
        assert get(guard_client, "/users", user_id).status_code == 200
        assert get(guard_client, "/api/users", user_id).status_code == 200

    def test_session_without_profile(self, guard_client):
        response = get(guard_client, "/dashboard", "ghost")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?error=invalid_session"

        response = get(guard_client, "/api/profile", "ghost")
        assert response.status_code == 401

    def test_profile_lookup_failure_fails_closed(self, guard_client):
        response = get(guard_client, "/dashboard", "broken")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?error=session_error"

    def test_session_lookup_failure_fails_closed(self, guard_client):
        response = get(guard_client, "/api/users", "explode")
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?error=session_error"

    def test_guard_is_idempotent(self, guard_client):
        first = get(guard_client, "/users", "user-1")
        second = get(guard_client, "/users", "user-1")
        assert first.status_code == second.status_code
        assert first.headers["location"] == second.headers["location"]


class TestEvaluateRoute:
    """Decisions at the coroutine level, without HTTP"""

    @pytest.mark.asyncio
    async def test_public_path_never_loads_session(self):
        load_session = AsyncMock()
        load_profile = AsyncMock()

        decision = await evaluate_route("/", load_session, load_profile)

        assert decision.action == GuardAction.ALLOW
        load_session.assert_not_awaited()
        load_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_profile_not_loaded_without_session(self):
        load_session = AsyncMock(return_value=None)
        load_profile = AsyncMock()

        decision = await evaluate_route("/api/users", load_session, load_profile)

        assert decision.action == GuardAction.DENY
        assert decision.status_code == 401
        load_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_on_users_api_is_allowed(self):
        session = SessionData(token="t", user_id="admin-1", email="admin@example.com")
        profile = PROFILES["admin-1"]

        decision = await evaluate_route(
            "/api/users",
            AsyncMock(return_value=session),
            AsyncMock(return_value=profile)
        )

        assert decision.action == GuardAction.ALLOW
        assert decision.session is session
        assert decision.profile is profile

    @pytest.mark.asyncio
    async def test_users_area_never_passes_for_non_admins(self):
        session = SessionData(token="t", user_id="u", email="u@example.com")

        for role in ("USER", "DIRECTOR", "PROFESOR", None, "UNKNOWN"):
            profile = SimpleNamespace(role=role)
            for path in ("/users", "/users/1", "/api/users", "/api/users/1/reset-password"):
                decision = await evaluate_route(path, AsyncMock(return_value=session), AsyncMock(return_value=profile))
                assert decision.action != GuardAction.ALLOW

    @pytest.mark.asyncio
    async def test_same_inputs_same_decision(self):
        session = SessionData(token="t", user_id="u", email="u@example.com")
        profile = SimpleNamespace(role="USER")

        decisions = [
            await evaluate_route("/users", AsyncMock(return_value=session), AsyncMock(return_value=profile))
            for _ in range(3)
        ]

        assert len({(d.action, d.status_code, d.location) for d in decisions}) == 1
