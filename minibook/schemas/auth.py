import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.]+$")

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class RegisterRequest(BaseModel):
    """Payload for creating a new account"""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., max_length=100)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        value = value.strip()
        if not USERNAME_PATTERN.match(value):
            raise ValueError(
                "Username may only contain letters, digits, underscores and dots"
            )
        return value

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        # Stored lowercase; login lowercases before comparing
        return value.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Full name is required")
        return value


class LoginRequest(BaseModel):
    """Login with username or email"""

    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    success: bool = True
    user: UserResponse
