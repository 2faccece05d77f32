from .roles import (
    Role,
    ADMIN_ROLES,
    SCHOOL_STAFF_ROLES,
    CASE_MANAGER_ROLES,
    role_rank,
    is_admin,
    is_super_admin,
    can_access_resource,
    can_modify_user,
    can_create_user_with_role,
    can_manage_school,
    can_view_cases,
    can_create_cases,
    can_upload_evidence,
)
from .principal import Principal
