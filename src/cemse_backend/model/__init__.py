from .base import Base, metadata
from .auth import AuthUser, Profile
from .school import School
from .case import Case
from .audit import AuditLog
from .library import LibraryItem

__all__ = [
    'Base',
    'metadata',
    'AuthUser',
    'Profile',
    'School',
    'Case',
    'AuditLog',
    'LibraryItem',
]
