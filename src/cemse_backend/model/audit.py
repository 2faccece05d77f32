from sqlalchemy import JSON, Column, DateTime, String, func

from .base import Base, generate_uuid


class AuditLog(Base):
    __tablename__ = 'audit_log'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now(), index=True)
    action = Column(String(64), nullable=False, index=True)
    entity_type = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    description = Column(String(1024))
    changes = Column(JSON)
    # "metadata" is reserved on declarative classes
    details = Column('metadata', JSON)
    ip_address = Column(String(64))
    user_agent = Column(String(512))
