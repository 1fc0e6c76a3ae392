from pydantic import BaseModel, EmailStr, Field, validator
from datetime import datetime
from typing import Optional
from remie.models.user import UserRole, UserStatus


class UserBase(BaseModel):
    """
    Base user schema with common fields.
    """
    email: EmailStr
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    student_id: Optional[str] = None
    institution: Optional[str] = None


class RegisterRequest(UserBase):
    """
    Schema for self-registration.
    """
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, description="At least 8 characters")

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8)


class UpdateProfileRequest(BaseModel):
    """
    Fields a user may change on their own profile. Omitted fields are untouched.
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    student_id: Optional[str] = None
    institution: Optional[str] = None


class UserResponse(UserBase):
    """
    Schema for user responses (what we send to the client).
    """
    email: str
    id: str
    nickname: Optional[str] = None
    role: UserRole
    status: UserStatus
    email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        """
        Pydantic config to work with SQLAlchemy models.
        This allows us to return ORM objects directly.
        """
        from_attributes = True


class TokenResponse(BaseModel):
    """
    Schema for JWT token responses.
    """
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenResponse):
    user: UserResponse
