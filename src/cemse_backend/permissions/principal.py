from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from cemse_backend.api.exceptions import ForbiddenException
from cemse_backend.permissions.roles import (
    Role,
    RoleLike,
    can_access_resource,
    coerce_role,
    is_admin,
    is_super_admin,
)


class Principal(BaseModel):
    """The authenticated actor of a request, resolved from session and profile."""

    user_id: str = Field(description="AuthUser id the session belongs to")
    profile_id: str = Field(description="Profile id of the actor")
    email: str
    name: Optional[str] = None
    role: Optional[Role] = None
    school_id: Optional[str] = None
    force_password_change: bool = False

    model_config = ConfigDict(use_enum_values=False)

    @classmethod
    def from_profile(cls, profile) -> "Principal":
        return cls(
            user_id=profile.auth_user_id,
            profile_id=profile.id,
            email=profile.email,
            name=profile.name,
            role=coerce_role(profile.role),
            school_id=profile.school_id,
            force_password_change=bool(profile.force_password_change),
        )

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    @property
    def is_super_admin(self) -> bool:
        return is_super_admin(self.role)

    def permitted(self, required_role: RoleLike) -> bool:
        return can_access_resource(self.role, required_role)

    def require(self, required_role: RoleLike, detail: str = "Insufficient permissions"):
        if not self.permitted(required_role):
            raise ForbiddenException(detail)
