from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cemse_backend.interface.base import BaseEntityGet, ListQuery, Pagination
from cemse_backend.interface.profiles import ProfileBrief, SchoolSummary

MAX_TITLE_LENGTH = 255


class LibraryVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


def _check_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError('Title is required')
    if len(v) > MAX_TITLE_LENGTH:
        raise ValueError(f'Title must be at most {MAX_TITLE_LENGTH} characters')
    return v


class LibraryItemGet(BaseEntityGet):
    id: str
    title: str
    description: Optional[str] = None
    file_name: str
    file_url: str
    file_size: int
    mime_type: str
    visibility: LibraryVisibility
    is_approved: bool
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    created_by: Optional[str] = None
    creator: Optional[ProfileBrief] = None
    school_id: Optional[str] = None
    school: Optional[SchoolSummary] = None

    model_config = ConfigDict(from_attributes=True)


class LibraryItemUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    visibility: Optional[LibraryVisibility] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _check_title(v)


class LibraryQuery(ListQuery):
    limit: int = Field(20, ge=1, le=100)
    search: Optional[str] = Field(None, description="Match on title, description or file name")
    visibility: Optional[LibraryVisibility] = Field(None, description="Only honored for admins")


class LibraryList(BaseModel):
    items: List[LibraryItemGet]
    pagination: Pagination


class LibraryItemResponse(BaseModel):
    success: bool = True
    message: str
    item: LibraryItemGet


class LibraryItemCreate(BaseModel):
    """Form fields of an upload, validated once the multipart body is parsed."""
    title: str
    description: Optional[str] = Field(None, max_length=2000)
    visibility: LibraryVisibility = LibraryVisibility.PRIVATE

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _check_title(v)

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        return v or None
