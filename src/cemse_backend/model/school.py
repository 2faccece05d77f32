from sqlalchemy import Boolean, Column, DateTime, Enum, String, func
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid

SCHOOL_TYPE_VALUES = ('PUBLIC', 'PRIVATE', 'SUBSIDIZED')


class School(Base):
    __tablename__ = 'school'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    name = Column(String(200), nullable=False)
    code = Column(String(50), unique=True, nullable=False, index=True)
    type = Column(Enum(*SCHOOL_TYPE_VALUES, name='school_type'), nullable=False)
    address = Column(String(500))
    district = Column(String(100))
    phone = Column(String(40))
    email = Column(String(320))
    is_deleted = Column(Boolean, nullable=False, default=False)

    profiles = relationship('Profile', back_populates='school', uselist=True, lazy='select')
    cases = relationship('Case', back_populates='school', uselist=True, lazy='select')
