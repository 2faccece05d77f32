from sqlalchemy import (
    BigInteger, Boolean, Column, DateTime, Enum, ForeignKey, String, Text, func
)
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid

LIBRARY_VISIBILITY_VALUES = ('PUBLIC', 'PRIVATE')


class LibraryItem(Base):
    """Shared document. PUBLIC items uploaded by directors wait for an admin's approval."""
    __tablename__ = 'library_item'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    title = Column(String(255), nullable=False)
    description = Column(Text)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(2048), nullable=False)
    object_key = Column(String(1024))
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(255), nullable=False)
    visibility = Column(Enum(*LIBRARY_VISIBILITY_VALUES, name='library_visibility'), nullable=False, default='PRIVATE')
    is_approved = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime(True))
    approved_by = Column(ForeignKey('profile.id', ondelete='SET NULL'))
    created_by = Column(ForeignKey('profile.id', ondelete='SET NULL'))
    school_id = Column(ForeignKey('school.id', ondelete='SET NULL'), index=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(True))
    deleted_by = Column(ForeignKey('profile.id', ondelete='SET NULL'))

    creator = relationship('Profile', foreign_keys=[created_by])
    approver = relationship('Profile', foreign_keys=[approved_by])
    school = relationship('School', lazy='select')
