import logging
from typing import Annotated
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import BadRequestException, NotFoundException, UnauthorizedException
from cemse_backend.api.utils import get_actor_profile
from cemse_backend.auth.passwords import hash_password, verify_password
from cemse_backend.auth.sessions import SessionProvider, extract_session_token, get_session_provider
from cemse_backend.database import get_db
from cemse_backend.interface.auth import (
    ChangePasswordRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    SignInRequest,
    SignInResponse,
    UserSummary,
)
from cemse_backend.model.auth import AuthUser, Profile
from cemse_backend.permissions.auth import get_current_principal
from cemse_backend.permissions.principal import Principal
from cemse_backend.services.accounts import create_account
from cemse_backend.services.audit import log_login, log_logout, log_password_change
from cemse_backend.settings import settings

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])

ANONYMOUS_ACTOR = "anonymous"


def change_password(db: Session, principal: Principal, payload: ChangePasswordRequest, request: Request) -> Profile:

    profile = get_actor_profile(db, principal)
    auth_user = profile.auth_user

    if not verify_password(payload.current_password, auth_user.password_hash):
        raise BadRequestException("Current password is incorrect")

    auth_user.password_hash = hash_password(payload.new_password)
    profile.force_password_change = False
    db.commit()
    db.refresh(profile)

    log_password_change(profile.id, profile.id, profile.email, request=request)
    return profile


@auth_router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):

    profile = create_account(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        phone=payload.phone,
        department=payload.department
    )

    return RegisterResponse(
        message="User registered successfully",
        user=UserSummary(id=profile.auth_user_id, email=profile.email, name=profile.name, role=profile.role)
    )


def authenticate(db: Session, email: str, password: str, request: Request) -> Profile:
    """
    Credential check for sign-in. Blocking (bcrypt and database access), so the
    async handler runs it in the threadpool.
    """
    auth_user = db.query(AuthUser).filter(AuthUser.email == email).first()

    if auth_user is None or not verify_password(password, auth_user.password_hash):
        log_login(auth_user.id if auth_user else ANONYMOUS_ACTOR, email, success=False, request=request)
        raise UnauthorizedException("Invalid email or password")

    profile = auth_user.profile
    if profile is None:
        raise NotFoundException("User profile not found")

    if profile.is_deleted:
        log_login(profile.id, email, success=False, request=request)
        raise UnauthorizedException("Invalid email or password")

    return profile


def _log_logout(db: Session, user_id: str, email: str, request: Request):
    profile = db.query(Profile).filter(Profile.auth_user_id == user_id).first()
    log_logout(profile.id if profile else user_id, email, request=request)


@auth_router.post("/sign-in", response_model=SignInResponse)
async def sign_in(
    payload: SignInRequest,
    request: Request,
    response: Response,
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
    db: Session = Depends(get_db)
):
    email = payload.email.lower()
    profile = await run_in_threadpool(authenticate, db, email, payload.password, request)

    session = await provider.create_session(profile.auth_user_id, email)

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        max_age=settings.SESSION_TTL,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax"
    )

    await run_in_threadpool(log_login, profile.id, email, success=True, request=request)

    return SignInResponse(
        message="Signed in successfully",
        user=UserSummary(id=profile.auth_user_id, email=email, name=profile.name, role=profile.role),
        requires_password_change=bool(profile.force_password_change),
        token=session.token
    )


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
    db: Session = Depends(get_db)
):
    token = extract_session_token(request)
    session = await provider.lookup(token)

    if session is not None:
        await provider.destroy_session(token)
        await run_in_threadpool(_log_logout, db, session.user_id, session.email, request)

    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageResponse(message="Signed out successfully")


@auth_router.post("/change-password", response_model=MessageResponse)
def change_own_password(
    payload: ChangePasswordRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    change_password(db, principal, payload, request)
    return MessageResponse(message="Password updated successfully")
