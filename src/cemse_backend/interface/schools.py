from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from cemse_backend.interface.base import BaseEntityGet, ListQuery, Pagination
from cemse_backend.interface.validators import check_phone

SCHOOL_CODE_PATTERN = r"^[A-Z0-9-]+$"


class SchoolType(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    SUBSIDIZED = "SUBSIDIZED"


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SchoolCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    code: str = Field(min_length=2, max_length=50, pattern=SCHOOL_CODE_PATTERN)
    type: SchoolType
    address: Optional[str] = Field(None, max_length=500)
    district: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, v):
        return _blank_to_none(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    code: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SCHOOL_CODE_PATTERN)
    type: Optional[SchoolType] = None
    address: Optional[str] = Field(None, max_length=500)
    district: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, v):
        return _blank_to_none(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)


class SchoolGet(BaseEntityGet):
    id: str
    name: str
    code: str
    type: SchoolType
    address: Optional[str] = None
    district: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    user_count: int = 0
    case_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class SchoolOption(BaseModel):
    id: str
    name: str
    code: str

    model_config = ConfigDict(from_attributes=True)


class SchoolQuery(ListQuery):
    search: Optional[str] = Field(None, description="Match on name, code or district")
    type: Optional[SchoolType] = None


class SchoolList(BaseModel):
    schools: List[SchoolGet]
    pagination: Pagination
