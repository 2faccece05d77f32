import logging
from typing import Optional
from sqlalchemy.orm import Session

from cemse_backend.api.exceptions import ConflictException
from cemse_backend.auth.passwords import hash_password
from cemse_backend.model.auth import AuthUser, Profile
from cemse_backend.permissions.roles import Role

logger = logging.getLogger(__name__)


def create_account(db: Session, email: str, password: str, name: str,
                   phone: Optional[str] = None, department: Optional[str] = None,
                   role: Role = Role.USER, force_password_change: bool = False,
                   school_id: Optional[str] = None) -> Profile:
    """Create an AuthUser with its Profile. Raises ConflictException on a taken email."""

    email = email.lower()

    if db.query(AuthUser.id).filter(AuthUser.email == email).first() is not None:
        raise ConflictException("This email is already registered")

    auth_user = AuthUser(email=email, password_hash=hash_password(password))
    db.add(auth_user)
    db.flush()

    profile = Profile(
        auth_user_id=auth_user.id,
        email=email,
        name=name,
        phone=phone,
        department=department,
        role=Role(role).value,
        force_password_change=force_password_change,
        school_id=school_id
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)

    logger.info(f"Created account {email} with role {profile.role}")
    return profile


def ensure_super_admin(db: Session, email: str, password: str, name: str) -> Profile:
    """Create the super admin account unless the email is already taken."""

    existing = db.query(Profile).filter(Profile.email == email.lower()).first()

    if existing is not None:
        if existing.role != Role.SUPER_ADMIN.value:
            logger.warning(f"Seed account {email} exists with role {existing.role}, leaving it unchanged")
        return existing

    return create_account(db, email=email, password=password, name=name, role=Role.SUPER_ADMIN)
