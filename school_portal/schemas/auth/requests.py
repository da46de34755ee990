from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from school_portal.schemas.base import CamelModel
from school_portal.schemas.enums import UserRoleEnum


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    """Creates a user and the profile row matching its role"""
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    name: str = Field(min_length=1, max_length=100)
    name_ar: Optional[str] = None
    role: UserRoleEnum
    phone: Optional[str] = None

    # Teacher profile
    employee_id: Optional[str] = None
    specialization: Optional[str] = None
    hire_date: Optional[date] = None

    # Student profile
    student_number: Optional[str] = None
    class_room_id: Optional[int] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None

    # Parent profile
    occupation: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()
