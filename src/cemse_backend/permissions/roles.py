"""
Role hierarchy and the permission predicates shared by the route guard and
the API handlers.

Every predicate is total: roles may be given as ``Role`` members or their
canonical string values, and any other value or ``None`` (an actor without a profile) is
treated as the least privileged actor possible.
"""

from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    USER = "USER"
    DIRECTOR = "DIRECTOR"
    PROFESOR = "PROFESOR"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


RoleLike = Union[Role, str, None]

ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
SCHOOL_STAFF_ROLES = frozenset({Role.DIRECTOR, Role.PROFESOR})
CASE_MANAGER_ROLES = SCHOOL_STAFF_ROLES | ADMIN_ROLES
LIBRARY_UPLOADER_ROLES = ADMIN_ROLES | {Role.DIRECTOR}

PUBLIC_VISIBILITY = "PUBLIC"
PRIVATE_VISIBILITY = "PRIVATE"

# School staff share the USER tier; staff capabilities use the role sets above.
ROLE_RANKS = {
    Role.USER: 1,
    Role.PROFESOR: 1,
    Role.DIRECTOR: 1,
    Role.ADMIN: 2,
    Role.SUPER_ADMIN: 3,
}

UNPRIVILEGED_RANK = 0


def coerce_role(role: RoleLike) -> Optional[Role]:
    """Map a role value onto the enum, or None if it is not a known role."""
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role))
    except ValueError:
        return None


def role_rank(role: RoleLike) -> int:
    resolved = coerce_role(role)
    if resolved is None:
        return UNPRIVILEGED_RANK
    return ROLE_RANKS[resolved]


def is_admin(role: RoleLike) -> bool:
    return coerce_role(role) in ADMIN_ROLES


def is_super_admin(role: RoleLike) -> bool:
    return coerce_role(role) == Role.SUPER_ADMIN


def is_school_staff(role: RoleLike) -> bool:
    return coerce_role(role) in SCHOOL_STAFF_ROLES


def can_access_resource(actor_role: RoleLike, required_role: RoleLike) -> bool:
    """True if the actor's rank meets the rank of the required role."""
    if coerce_role(actor_role) is None:
        return False
    return role_rank(actor_role) >= role_rank(required_role)


def can_modify_user(actor_role: RoleLike, target_role: RoleLike,
                    actor_id: Optional[str], target_id: Optional[str]) -> bool:
    """
    SUPER_ADMIN may modify anyone, ADMIN only USER targets, and every actor
    may modify themself. Everything else is denied.
    """
    if actor_id is not None and actor_id == target_id:
        return True

    actor = coerce_role(actor_role)

    if actor == Role.SUPER_ADMIN:
        return True

    if actor == Role.ADMIN:
        return coerce_role(target_role) == Role.USER

    return False


def can_create_user_with_role(actor_role: RoleLike, desired_role: RoleLike) -> bool:
    actor = coerce_role(actor_role)
    desired = coerce_role(desired_role)

    if desired is None:
        return False

    if actor == Role.SUPER_ADMIN:
        return True

    if actor == Role.ADMIN:
        return desired == Role.USER

    return False


def can_manage_school(actor_role: RoleLike, actor_school_id: Optional[str], school_id: Optional[str]) -> bool:
    """Admins manage every school, directors only the one they belong to."""
    actor = coerce_role(actor_role)

    if actor in ADMIN_ROLES:
        return True

    if actor == Role.DIRECTOR and school_id is not None:
        return actor_school_id is not None and actor_school_id == school_id

    return False


def can_view_cases(role: RoleLike) -> bool:
    return coerce_role(role) in CASE_MANAGER_ROLES


def can_create_cases(role: RoleLike) -> bool:
    return coerce_role(role) in CASE_MANAGER_ROLES


def can_upload_evidence(role: RoleLike) -> bool:
    return coerce_role(role) in CASE_MANAGER_ROLES


def can_upload_library(role: RoleLike) -> bool:
    return coerce_role(role) in LIBRARY_UPLOADER_ROLES


def can_view_library_item(actor_role: RoleLike, actor_school_id: Optional[str],
                          item_school_id: Optional[str], visibility: str, is_approved: bool) -> bool:
    """
    Admins see every item. School staff with a school see approved PUBLIC
    items of any school, plus the items of their own school: directors all
    of them, profesores only the PRIVATE ones.
    """
    actor = coerce_role(actor_role)

    if actor in ADMIN_ROLES:
        return True

    if actor not in SCHOOL_STAFF_ROLES or actor_school_id is None:
        return False

    if visibility == PUBLIC_VISIBILITY and is_approved:
        return True

    if item_school_id != actor_school_id:
        return False

    return actor == Role.DIRECTOR or visibility == PRIVATE_VISIBILITY


def can_edit_library_item(actor_role: RoleLike, actor_id: Optional[str], actor_school_id: Optional[str],
                          creator_id: Optional[str], item_school_id: Optional[str]) -> bool:
    """Admins edit every item, directors only their own uploads for their own school."""
    actor = coerce_role(actor_role)

    if actor in ADMIN_ROLES:
        return True

    if actor != Role.DIRECTOR or actor_id is None or actor_school_id is None:
        return False

    return actor_id == creator_id and actor_school_id == item_school_id
