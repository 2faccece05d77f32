from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cemse_backend.database import get_db
from cemse_backend.interface.audit import AuditLogGet, AuditLogList, AuditLogQuery
from cemse_backend.interface.base import paginate
from cemse_backend.model.audit import AuditLog
from cemse_backend.permissions.auth import require_role
from cemse_backend.permissions.principal import Principal
from cemse_backend.permissions.roles import Role

audit_log_router = APIRouter(prefix="/audit-logs", tags=["audit"])


def audit_log_search(query, params: AuditLogQuery):
    if params.action:
        query = query.filter(AuditLog.action.ilike(f"%{params.action}%"))
    if params.entity_type:
        query = query.filter(AuditLog.entity_type == params.entity_type)
    if params.entity_id:
        query = query.filter(AuditLog.entity_id == params.entity_id)
    if params.user_id:
        query = query.filter(AuditLog.user_id == params.user_id)
    if params.start_date is not None:
        query = query.filter(AuditLog.created_at >= params.start_date)
    if params.end_date is not None:
        query = query.filter(AuditLog.created_at <= params.end_date)
    return query


@audit_log_router.get("", response_model=AuditLogList)
def list_audit_logs(
    principal: Annotated[Principal, Depends(require_role(Role.ADMIN))],
    params: AuditLogQuery = Depends(),
    db: Session = Depends(get_db)
):
    query = audit_log_search(db.query(AuditLog), params)
    logs, pagination = paginate(query.order_by(AuditLog.created_at.desc(), AuditLog.id), params.page, params.limit)
    return AuditLogList(logs=[AuditLogGet.model_validate(log) for log in logs], pagination=pagination)
