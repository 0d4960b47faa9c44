"""
LeadsFlow CRM - Modeles Auth & Utilisateurs
Roles: admin (everything), manager, sales.
"""

from typing import Optional

from pydantic import BaseModel, field_validator

from config import MIN_PASSWORD_LENGTH


VALID_ROLES = ["admin", "manager", "sales"]


def _check_password(v: str) -> str:
    if len(v or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return v


class UserLogin(BaseModel):
    email: str  # username or email
    password: str

    @field_validator("email", "password")
    @classmethod
    def not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Username or email and password are required")
        return v


class UserCreate(BaseModel):
    username: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    password: str
    role: str = "sales"
    department: Optional[str] = None

    @field_validator("username", "name")
    @classmethod
    def required(cls, v):
        if not v or not v.strip():
            raise ValueError("Field is required")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_length(cls, v):
        return _check_password(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in VALID_ROLES:
            raise ValueError(f"Invalid role: {v}. Valid: {VALID_ROLES}")
        return v


class UserUpdate(BaseModel):
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None
    isActive: Optional[bool] = None
    password: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v is not None and v not in VALID_ROLES:
            raise ValueError(f"Invalid role: {v}")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v):
        return _check_password(v) if v else v


class ChangePassword(BaseModel):
    currentPassword: str
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def password_length(cls, v):
        return _check_password(v)


# ==================== CODE LOGIN ====================

class EmailCodeRequest(BaseModel):
    email: str


class EmailCodeVerify(BaseModel):
    email: str
    code: str


class WhatsAppCodeRequest(BaseModel):
    phoneNumber: str


class WhatsAppCodeVerify(BaseModel):
    phoneNumber: str
    code: str
