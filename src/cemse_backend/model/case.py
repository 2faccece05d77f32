from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text, func
)
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid

VIOLENCE_TYPE_VALUES = (
    'PHYSICAL', 'VERBAL', 'PSYCHOLOGICAL', 'SEXUAL',
    'CYBERBULLYING', 'DISCRIMINATION', 'PROPERTY_DAMAGE', 'OTHER',
)
CASE_STATUS_VALUES = ('OPEN', 'IN_PROGRESS', 'UNDER_REVIEW', 'RESOLVED', 'CLOSED', 'ARCHIVED')
CASE_PRIORITY_VALUES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')


class Case(Base):
    __tablename__ = 'school_case'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    case_number = Column(String(32), unique=True, nullable=False, index=True)
    incident_date = Column(Date, nullable=False)
    incident_time = Column(String(5), nullable=False)
    violence_type = Column(Enum(*VIOLENCE_TYPE_VALUES, name='violence_type'), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=False)
    custom_location = Column(String(255))
    victim_is_anonymous = Column(Boolean, nullable=False, default=False)
    victim_name = Column(String(255), nullable=False)
    victim_age = Column(Integer)
    victim_grade = Column(String(50))
    aggressor_name = Column(String(255), nullable=False)
    aggressor_description = Column(Text)
    relationship_to_victim = Column(String(255))
    witnesses = Column(Text)
    evidence_files = Column(JSON, nullable=False, default=list)
    status = Column(Enum(*CASE_STATUS_VALUES, name='case_status'), nullable=False, default='OPEN')
    priority = Column(Enum(*CASE_PRIORITY_VALUES, name='case_priority'), nullable=False, default='MEDIUM')
    school_id = Column(ForeignKey('school.id', ondelete='RESTRICT'), nullable=False, index=True)
    created_by = Column(ForeignKey('profile.id', ondelete='SET NULL'))
    is_deleted = Column(Boolean, nullable=False, default=False)

    school = relationship('School', back_populates='cases')
    creator = relationship('Profile', foreign_keys=[created_by])
