from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from school_portal.schemas.base import CamelModel
from school_portal.schemas.enums import AttendanceStatus


class AssignmentCreate(CamelModel):
    title: str = Field(min_length=1)
    subject_id: int
    due_date: datetime
    total_marks: float = Field(gt=0)
    class_room_ids: List[int] = []
    description: Optional[str] = None
    instructions: Optional[str] = None
    semester_id: Optional[int] = None
    # Required when an admin creates on a teacher's behalf
    teacher_id: Optional[int] = None

    @field_validator("class_room_ids", mode="before")
    @classmethod
    def coerce_single_id(cls, v):
        if v is None:
            return []
        if isinstance(v, (int, str)):
            return [v]
        return v


class AttendanceEntry(CamelModel):
    student_id: int
    status: AttendanceStatus
    remarks: Optional[str] = None


class AttendanceMarkRequest(CamelModel):
    class_room_id: int
    subject_id: int
    date: date
    records: List[AttendanceEntry] = Field(min_length=1)


class GradeCreate(CamelModel):
    student_id: int
    subject_id: int
    marks: float = Field(ge=0)
    total_marks: float = Field(gt=0)
    exam_type: str = Field(min_length=1)
    exam_date: date
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def validate_marks(self) -> "GradeCreate":
        if self.marks > self.total_marks:
            raise ValueError("Marks cannot exceed total marks")
        return self


class SubmissionCreate(CamelModel):
    content: Optional[str] = None


class SubmissionGrade(CamelModel):
    marks_obtained: float = Field(ge=0)
    feedback: Optional[str] = None


class ExamCreate(CamelModel):
    title: str = Field(min_length=1)
    subject_id: int
    class_room_id: int
    exam_date: datetime
    total_marks: float = Field(gt=0)
    duration: int = Field(default=120, ge=1)
    description: Optional[str] = None
    instructions: Optional[str] = None
    semester_id: Optional[int] = None
    # Required when an admin creates on a teacher's behalf
    teacher_id: Optional[int] = None


class ExamUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    instructions: Optional[str] = None
    exam_date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1)
    total_marks: Optional[float] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class ExamResultEntry(CamelModel):
    student_id: int
    marks_obtained: float
    remarks: Optional[str] = None


class ExamResultsRequest(CamelModel):
    results: List[ExamResultEntry]
