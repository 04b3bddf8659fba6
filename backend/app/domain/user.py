"""
User and Address domain models
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.domain.base import DomainModel


class User(DomainModel):
    """User account without credentials"""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    role: str = "USER"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class SignupRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, description="At least 6 characters")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class Address(DomainModel):
    id: int
    user_id: int
    title: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    address_line: str
    city: str
    district: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: bool = False
    created_at: Optional[datetime] = None


class AddressCreate(BaseModel):
    title: Optional[str] = None
    full_name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address_line: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = "TR"
    is_default: bool = False


class AddressUpdate(BaseModel):
    title: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: Optional[bool] = None
