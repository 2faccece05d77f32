from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, String, func
)
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid

ROLE_VALUES = ('USER', 'DIRECTOR', 'PROFESOR', 'ADMIN', 'SUPER_ADMIN')


class AuthUser(Base):
    """Authentication identity, the subject a session refers to."""
    __tablename__ = 'auth_user'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email_verified_at = Column(DateTime(True))

    profile = relationship("Profile", back_populates="auth_user", uselist=False, lazy="select")


class Profile(Base):
    __tablename__ = 'profile'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    auth_user_id = Column(ForeignKey('auth_user.id', ondelete='CASCADE'), nullable=False, unique=True, index=True)
    email = Column(String(320), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    phone = Column(String(40))
    department = Column(String(100))
    biography = Column(String(1000))
    pfp_url = Column(String(2048))
    role = Column(Enum(*ROLE_VALUES, name='role'), nullable=False, server_default='USER')
    school_id = Column(ForeignKey('school.id', ondelete='SET NULL'), nullable=True, index=True)
    force_password_change = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    auth_user = relationship('AuthUser', back_populates='profile')
    school = relationship('School', back_populates='profiles', lazy='select')
