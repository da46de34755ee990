from datetime import date
from typing import Optional

from pydantic import Field, model_validator

from school_portal.schemas.base import CamelModel
from school_portal.schemas.enums import PlanningStatus


class AcademicYearCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    is_active: bool = False
    status: PlanningStatus = PlanningStatus.PLANNING
    description: Optional[str] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "AcademicYearCreate":
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class AcademicYearUpdate(CamelModel):
    """Partial update; ``isActive`` switches into the activation path"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None
    status: Optional[PlanningStatus] = None
    description: Optional[str] = None


class SemesterCreate(CamelModel):
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    academic_year_id: Optional[int] = None
    semester_number: int = Field(default=1, ge=1)
    start_date: date
    end_date: date
    is_active: bool = False


class SemesterUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    name_ar: Optional[str] = None
    academic_year_id: Optional[int] = None
    semester_number: Optional[int] = Field(default=None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class GradeLevelCreate(CamelModel):
    name: str = Field(min_length=1)
    name_ar: str = Field(min_length=1)
    level: int = Field(ge=1)
    description: Optional[str] = None


class GradeLevelUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    name_ar: Optional[str] = Field(default=None, min_length=1)
    level: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ClassRoomCreate(CamelModel):
    section: str = Field(min_length=1)
    grade_level_id: int
    room_number: str = Field(min_length=1)
    academic_year_id: int
    name: Optional[str] = None
    name_ar: Optional[str] = None
    capacity: int = Field(default=30, ge=1)
    class_teacher_id: Optional[int] = None


class ClassRoomUpdate(CamelModel):
    section: Optional[str] = Field(default=None, min_length=1)
    grade_level_id: Optional[int] = None
    room_number: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    name_ar: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    class_teacher_id: Optional[int] = None
    is_active: Optional[bool] = None


class SpecialLocationCreate(CamelModel):
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    type: str = Field(min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None


class SubjectCreate(CamelModel):
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    code: str = Field(min_length=1, max_length=20)
    description: Optional[str] = None
    grade_level_id: Optional[int] = None


class SpecialLocationUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    name_ar: Optional[str] = None
    type: Optional[str] = Field(default=None, min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SubjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    name_ar: Optional[str] = None
    code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    description: Optional[str] = None
    grade_level_id: Optional[int] = None
    is_active: Optional[bool] = None
