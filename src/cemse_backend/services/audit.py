"""
Best-effort audit trail.

Audit records are written through their own database session, so a failing
audit write neither rolls back nor fails the operation being audited. Every
helper returns the stored ``AuditLog`` or ``None`` when the write failed.
"""

import logging
from typing import Any, Dict, Optional
from fastapi import Request
from fastapi.encoders import jsonable_encoder

from cemse_backend.database import SessionLocal
from cemse_backend.model.audit import AuditLog

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def request_origin(request: Optional[Request]) -> tuple[str, str]:
    """Client address and user agent of a request, 'unknown' where absent."""
    if request is None:
        return UNKNOWN, UNKNOWN

    ip_address = (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or (request.client.host if request.client else None)
        or UNKNOWN
    )
    user_agent = request.headers.get("user-agent") or UNKNOWN
    return ip_address, user_agent


def create_audit_log(
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    description: Optional[str] = None,
    changes: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None
) -> Optional[AuditLog]:

    db = None
    try:
        ip_address, user_agent = request_origin(request)

        db = SessionLocal()
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=str(user_id),
            description=description,
            changes=jsonable_encoder(changes) if changes else None,
            details=jsonable_encoder(metadata) if metadata else None,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        db.expunge(entry)
        return entry

    except Exception as e:
        logger.error(f"Error creating audit log {action} for {entity_type} {entity_id}: {e}")
        if db is not None:
            db.rollback()
        return None

    finally:
        if db is not None:
            db.close()


def log_create(entity_type: str, entity_id: str, entity_name: str, user_id: str,
               metadata: Optional[Dict[str, Any]] = None, request: Optional[Request] = None):
    return create_audit_log(
        action=f"{entity_type.upper()}_CREATED",
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        description=f'{entity_type} "{entity_name}" created',
        metadata=metadata,
        request=request
    )


def log_update(entity_type: str, entity_id: str, entity_name: str, user_id: str,
               changes: Dict[str, Any], metadata: Optional[Dict[str, Any]] = None,
               request: Optional[Request] = None):
    return create_audit_log(
        action=f"{entity_type.upper()}_UPDATED",
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        description=f'{entity_type} "{entity_name}" updated',
        changes=changes,
        metadata=metadata,
        request=request
    )


def log_delete(entity_type: str, entity_id: str, entity_name: str, user_id: str,
               metadata: Optional[Dict[str, Any]] = None, request: Optional[Request] = None):
    return create_audit_log(
        action=f"{entity_type.upper()}_DELETED",
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        description=f'{entity_type} "{entity_name}" deleted',
        metadata=metadata,
        request=request
    )


def log_password_change(user_id: str, target_user_id: str, target_email: str,
                        is_forced: bool = False, request: Optional[Request] = None):
    if is_forced:
        description = f"Password reset with forced change for {target_email}"
    else:
        description = f"Password changed for {target_email}"

    return create_audit_log(
        action="PASSWORD_CHANGED",
        entity_type="User",
        entity_id=target_user_id,
        user_id=user_id,
        description=description,
        metadata={"is_forced": is_forced},
        request=request
    )


def log_login(user_id: str, email: str, success: bool = True, request: Optional[Request] = None):
    return create_audit_log(
        action="LOGIN_SUCCESS" if success else "LOGIN_FAILED",
        entity_type="User",
        entity_id=user_id,
        user_id=user_id,
        description=f"Successful sign-in for {email}" if success else f"Failed sign-in attempt for {email}",
        request=request
    )


def log_logout(user_id: str, email: str, request: Optional[Request] = None):
    return create_audit_log(
        action="LOGOUT",
        entity_type="User",
        entity_id=user_id,
        user_id=user_id,
        description=f"Sign-out for {email}",
        request=request
    )


def log_case_status_change(case_id: str, case_number: str, user_id: str,
                           old_status: str, new_status: str, request: Optional[Request] = None):
    return create_audit_log(
        action="CASE_STATUS_CHANGED",
        entity_type="Case",
        entity_id=case_id,
        user_id=user_id,
        description=f"Case {case_number} status changed from {old_status} to {new_status}",
        changes={"status": {"from": old_status, "to": new_status}},
        request=request
    )


def log_school_assignment(target_user_id: str, target_email: str, user_id: str,
                          old_school_id: Optional[str], new_school_id: Optional[str],
                          request: Optional[Request] = None):
    return create_audit_log(
        action="USER_SCHOOL_ASSIGNED",
        entity_type="User",
        entity_id=target_user_id,
        user_id=user_id,
        description=f"School assignment changed for {target_email}",
        changes={"school_id": {"from": old_school_id, "to": new_school_id}},
        request=request
    )


def log_role_change(target_user_id: str, target_email: str, user_id: str,
                    old_role: str, new_role: str, request: Optional[Request] = None):
    return create_audit_log(
        action="USER_ROLE_CHANGED",
        entity_type="User",
        entity_id=target_user_id,
        user_id=user_id,
        description=f"Role of {target_email} changed from {old_role} to {new_role}",
        changes={"role": {"from": old_role, "to": new_role}},
        request=request
    )


def log_library_approval(item_id: str, title: str, user_id: str, request: Optional[Request] = None):
    return create_audit_log(
        action="LIBRARY_APPROVED",
        entity_type="Library",
        entity_id=item_id,
        user_id=user_id,
        description=f'Library item "{title}" approved for public listing',
        changes={"is_approved": {"from": False, "to": True}},
        request=request
    )
