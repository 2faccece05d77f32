from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from cemse_backend.interface.validators import check_name, check_password, check_phone
from cemse_backend.permissions.roles import Role


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str = Field(min_length=1)
    name: str
    phone: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return check_password(v)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return check_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return check_phone(v)

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError('Passwords do not match')
        return self


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserSummary(BaseModel):
    id: str = Field(description="AuthUser id")
    email: str
    name: Optional[str] = None
    role: Optional[Role] = None


class SignInResponse(BaseModel):
    success: bool = True
    message: str
    user: UserSummary
    requires_password_change: bool = False
    token: str = Field(description="Session token, also set as cookie")


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: UserSummary


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str
    confirm_password: str = Field(min_length=1)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        return check_password(v)

    @model_validator(mode='after')
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError('Passwords do not match')
        return self


class MessageResponse(BaseModel):
    success: bool = True
    message: str
