from datetime import datetime, timezone
from pydantic import BaseModel, EmailStr, Field, field_validator

EMAIL_MAX_LENGTH = 100


def clean_email(value):
    if not isinstance(value, str):
        return value
    value = value.strip().lower()
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"must be at most {EMAIL_MAX_LENGTH} characters")
    return value


class RegisterModel(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    isAdmin: bool

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return clean_email(value)


class LoginModel(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return clean_email(value)


class RoleUpdateModel(BaseModel):
    isAdmin: bool = Field(..., strict=True)


class UserModel(BaseModel):
    name: str
    email: str
    password: str
    isAdmin: bool = Field(default=False)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
