from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from cemse_backend.interface.base import ListQuery, Pagination
from cemse_backend.interface.profiles import ProfileGet
from cemse_backend.interface.validators import check_name, check_phone
from cemse_backend.permissions.roles import Role


class UserCreate(BaseModel):
    email: EmailStr
    name: str
    phone: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    role: Role = Role.USER
    force_password_change: bool = False
    school_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    biography: Optional[str] = Field(None, max_length=500)
    pfp_url: Optional[str] = Field(None, max_length=2048)
    role: Optional[Role] = None
    force_password_change: Optional[bool] = None
    school_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)


class UserQuery(ListQuery):
    search: Optional[str] = Field(None, description="Match on name or email")
    role: Optional[Role] = None


class UserList(BaseModel):
    users: List[ProfileGet]
    pagination: Pagination


class UserCreated(BaseModel):
    success: bool = True
    message: str
    user: ProfileGet
    temporary_password: str


class PasswordResetResponse(BaseModel):
    success: bool = True
    message: str
    temporary_password: str
