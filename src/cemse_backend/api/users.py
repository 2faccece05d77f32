import logging
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from cemse_backend.services.accounts import create_account
from cemse_backend.api.exceptions import BadRequestException, ForbiddenException
from cemse_backend.api.utils import apply_changes, get_profile_or_404
from cemse_backend.auth.passwords import generate_temporary_password, hash_password
from cemse_backend.database import get_db
from cemse_backend.interface.auth import MessageResponse
from cemse_backend.interface.base import paginate
from cemse_backend.interface.profiles import ProfileGet
from cemse_backend.interface.users import (
    PasswordResetResponse,
    UserCreate,
    UserCreated,
    UserList,
    UserQuery,
    UserUpdate,
)
from cemse_backend.model.auth import Profile
from cemse_backend.model.school import School
from cemse_backend.permissions.auth import get_current_principal, require_admin
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import (
    Role,
    can_create_user_with_role,
    can_modify_user,
)
from cemse_backend.services.audit import (
    log_create,
    log_delete,
    log_password_change,
    log_role_change,
    log_school_assignment,
    log_update,
)

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])


def _check_school(db: Session, school_id):
    if school_id is None:
        return
    school = db.query(School.id).filter(School.id == school_id, School.is_deleted == False).first()
    if school is None:
        raise BadRequestException("School not found")


@users_router.get("", response_model=UserList)
def list_users(
    principal: Annotated[Principal, Depends(require_admin)],
    params: UserQuery = Depends(),
    db: Session = Depends(get_db)
):
    query = db.query(Profile).filter(Profile.is_deleted == False)

    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(or_(Profile.name.ilike(pattern), Profile.email.ilike(pattern)))

    if params.role is not None:
        query = query.filter(Profile.role == params.role.value)

    users, pagination = paginate(query.order_by(Profile.created_at.desc(), Profile.id), params.page, params.limit)
    return UserList(users=[ProfileGet.model_validate(user) for user in users], pagination=pagination)


@users_router.post("", response_model=UserCreated, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    if not can_create_user_with_role(principal.role, payload.role):
        raise ForbiddenException(f"You cannot create users with role {payload.role.value}")

    _check_school(db, payload.school_id)

    temporary_password = generate_temporary_password()

    profile = create_account(
        db,
        email=payload.email,
        password=temporary_password,
        name=payload.name,
        phone=payload.phone,
        department=payload.department,
        role=payload.role,
        force_password_change=payload.force_password_change,
        school_id=payload.school_id
    )

    log_create("User", profile.id, profile.email, principal.profile_id,
               metadata={"role": profile.role, "school_id": profile.school_id}, request=request)

    return UserCreated(
        message="User created successfully",
        user=ProfileGet.model_validate(profile),
        temporary_password=temporary_password
    )


@users_router.get("/{user_id}", response_model=ProfileGet)
def get_user(
    user_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    profile = get_profile_or_404(db, user_id)

    if not principal.is_admin and principal.profile_id != profile.id:
        raise ForbiddenException("You cannot view this profile")

    return profile


@users_router.patch("/{user_id}", response_model=ProfileGet)
def update_user(
    user_id: str,
    payload: UserUpdate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    profile = get_profile_or_404(db, user_id)

    if not can_modify_user(principal.role, profile.role, principal.profile_id, profile.id):
        raise ForbiddenException("You cannot modify this user")

    data = payload.model_dump(exclude_unset=True)

    new_role = data.pop("role", None)
    if new_role is not None and Role(new_role).value != profile.role:
        if not principal.is_super_admin:
            raise ForbiddenException("Only super admins can change user roles")
        if principal.profile_id == profile.id:
            raise ForbiddenException("You cannot change your own role")
        data["role"] = Role(new_role).value

    if "school_id" in data:
        if not principal.is_admin:
            raise ForbiddenException("Only admins can assign schools")
        _check_school(db, data["school_id"])

    old_role = profile.role
    old_school_id = profile.school_id

    changes = apply_changes(profile, data)

    if changes:
        db.commit()
        db.refresh(profile)

        log_update("User", profile.id, profile.email, principal.profile_id, changes, request=request)

        if "role" in changes:
            log_role_change(profile.id, profile.email, principal.profile_id, old_role, profile.role, request=request)

        if "school_id" in changes:
            log_school_assignment(profile.id, profile.email, principal.profile_id,
                                  old_school_id, profile.school_id, request=request)

    return profile


@users_router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    profile = get_profile_or_404(db, user_id)

    if principal.profile_id == profile.id:
        raise ForbiddenException("You cannot delete yourself")

    if not can_modify_user(principal.role, profile.role, principal.profile_id, profile.id):
        raise ForbiddenException(f"You cannot delete users with role {profile.role}")

    email = profile.email

    # soft delete, the profile no longer resolves for sessions or lookups
    profile.is_deleted = True
    db.commit()

    logger.info(f"User {email} deleted by {principal.email}")
    log_delete("User", user_id, email, principal.profile_id, request=request)

    return MessageResponse(message="User deleted successfully")


@users_router.post("/{user_id}/reset-password", response_model=PasswordResetResponse)
def reset_user_password(
    user_id: str,
    request: Request,
    principal: Annotated[Principal, Depends(require_admin)],
    db: Session = Depends(get_db)
):
    profile = get_profile_or_404(db, user_id)

    if not principal.is_super_admin and profile.role != Role.USER.value:
        raise ForbiddenException("You can only reset passwords of users with role USER")

    temporary_password = generate_temporary_password()
    profile.auth_user.password_hash = hash_password(temporary_password)
    profile.force_password_change = True
    db.commit()

    log_password_change(principal.profile_id, profile.id, profile.email, is_forced=True, request=request)

    return PasswordResetResponse(
        message="Password reset successfully",
        temporary_password=temporary_password
    )
