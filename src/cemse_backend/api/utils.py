from typing import Any, Dict
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import NotFoundException, UnauthorizedException
from cemse_backend.model.auth import Profile
from cemse_backend.permissions.principal import Principal


def get_profile_or_404(db: Session, profile_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == profile_id, Profile.is_deleted == False).first()
    if profile is None:
        raise NotFoundException("User not found")
    return profile


def get_actor_profile(db: Session, principal: Principal) -> Profile:
    """The principal's profile, bound to the request's database session."""
    profile = db.query(Profile).filter(Profile.id == principal.profile_id, Profile.is_deleted == False).first()
    if profile is None:
        raise UnauthorizedException("Invalid session")
    return profile


def apply_changes(entity: Any, data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Assign ``data`` onto ``entity`` and return the fields whose value actually
    changed as ``{field: {"from": old, "to": new}}``.
    """
    changes = {}
    for field, value in data.items():
        old_value = getattr(entity, field)
        if jsonable_encoder(old_value) != jsonable_encoder(value):
            changes[field] = {"from": old_value, "to": value}
            setattr(entity, field, value)
    return changes
