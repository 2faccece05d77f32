from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from cemse_backend.interface.base import ListQuery, Pagination


class AuditLogGet(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    description: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="details")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AuditLogQuery(ListQuery):
    limit: int = Field(50, ge=1, le=200)
    action: Optional[str] = Field(None, description="Substring match on the action")
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class AuditLogList(BaseModel):
    logs: List[AuditLogGet]
    pagination: Pagination
