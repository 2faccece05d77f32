from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cemse_backend.interface.base import BaseEntityGet
from cemse_backend.interface.validators import check_name, check_phone
from cemse_backend.permissions.roles import Role


class SchoolSummary(BaseModel):
    id: str
    name: str
    code: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class ProfileGet(BaseEntityGet):
    id: str = Field(description="Profile unique identifier")
    auth_user_id: str = Field(description="Associated AuthUser id")
    email: str
    name: str
    phone: Optional[str] = None
    department: Optional[str] = None
    biography: Optional[str] = None
    pfp_url: Optional[str] = None
    role: Role
    school_id: Optional[str] = None
    school: Optional[SchoolSummary] = None
    force_password_change: bool = False

    model_config = ConfigDict(from_attributes=True)


class ProfileBrief(BaseModel):
    id: str
    email: str
    name: str
    pfp_url: Optional[str] = None
    role: Role

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    biography: Optional[str] = Field(None, max_length=1000)
    pfp_url: Optional[str] = Field(None, max_length=2048)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)

    @field_validator('pfp_url')
    @classmethod
    def validate_pfp_url(cls, v):
        if v == "":
            return None
        if v is not None and not (v.startswith('http://') or v.startswith('https://')):
            raise ValueError('URL must start with http:// or https://')
        return v
