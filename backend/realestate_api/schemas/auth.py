from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from realestate_api.models.user import UserRole


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=80)
    password: str = Field(min_length=6, max_length=128)
    full_name: str = Field(min_length=1, max_length=120)
    email: EmailStr | None = None
    phone: str | None = None
    company_name: str | None = None
    company_license: str | None = None


class UserResponse(BaseModel):
    id: int
    username: str
    full_name: str
    email: str | None
    phone: str | None
    role: UserRole
    is_active: bool
    company_name: str | None
    company_license: str | None
    vip_expires_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(min_length=6, max_length=128)


class UserUpdate(BaseModel):
    full_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    role: str | None = None
    is_active: bool | None = None
    company_name: str | None = None
    company_license: str | None = None
    vip_expires_at: datetime | None = None
