from typing import Annotated
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cemse_backend.api.auth import change_password
from cemse_backend.api.utils import apply_changes, get_actor_profile
from cemse_backend.database import get_db
from cemse_backend.interface.auth import ChangePasswordRequest
from cemse_backend.interface.profiles import ProfileGet, ProfileUpdate
from cemse_backend.permissions.auth import get_current_principal
from cemse_backend.permissions.principal import Principal
from cemse_backend.services.audit import log_update

profile_router = APIRouter(prefix="/profile", tags=["profile"])


@profile_router.get("", response_model=ProfileGet)
def get_own_profile(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    """Get the profile of the signed-in user"""
    return get_actor_profile(db, principal)


@profile_router.patch("", response_model=ProfileGet)
def update_own_profile(
    payload: ProfileUpdate,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    profile = get_actor_profile(db, principal)

    changes = apply_changes(profile, payload.model_dump(exclude_unset=True))

    if changes:
        db.commit()
        db.refresh(profile)
        log_update("Profile", profile.id, profile.name, principal.profile_id, changes, request=request)

    return profile


@profile_router.post("/change-password", response_model=ProfileGet)
def change_own_password(
    payload: ChangePasswordRequest,
    request: Request,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    return change_password(db, principal, payload, request)
