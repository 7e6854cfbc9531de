from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from galleria.schemas.image import CamelModel

Role = Literal["user", "admin"]


class RegisterPayload(BaseModel):
    email: EmailStr
    password: str = Field(max_length=255)
    role: str = "user"

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters')
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: str):
        if v not in ("user", "admin"):
            raise ValueError('Invalid role')
        return v


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class UserRecord(CamelModel):
    """Account stored under `user:<email>`."""

    email: str
    password_hash: str
    role: Role = "user"
    created_at: Optional[datetime] = None


class UserOut(CamelModel):
    email: str
    role: Role
    created_at: Optional[datetime] = None


class LoginOut(BaseModel):
    user: UserOut
    token: str
