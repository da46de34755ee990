from datetime import date, datetime
from typing import List, Optional

from school_portal.schemas.base import CamelModel, Envelope
from school_portal.schemas.enums import PlanningStatus


class SemesterResponse(CamelModel):
    id: int
    academic_year_id: int
    name: str
    name_ar: Optional[str] = None
    semester_number: int
    start_date: date
    end_date: date
    is_active: bool


class AcademicYearResponse(CamelModel):
    id: int
    name: str
    start_date: date
    end_date: date
    is_active: bool
    status: PlanningStatus
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    semesters: List[SemesterResponse] = []
    class_count: int = 0


class GradeLevelResponse(CamelModel):
    id: int
    name: str
    name_ar: str
    level: int
    description: Optional[str] = None
    is_active: bool


class GradeLevelStatsResponse(GradeLevelResponse):
    total_classes: int = 0
    total_students: int = 0


class ClassRoomBrief(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    section: str
    room_number: str
    grade_level: Optional[GradeLevelResponse] = None


class ClassRoomResponse(ClassRoomBrief):
    capacity: int
    grade_level_id: int
    academic_year_id: int
    class_teacher_id: Optional[int] = None
    is_active: bool
    student_count: int = 0


class SpecialLocationResponse(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    type: str
    capacity: Optional[int] = None
    description: Optional[str] = None
    is_active: bool


class SubjectResponse(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    code: str
    description: Optional[str] = None
    grade_level_id: Optional[int] = None
    is_active: bool


# Envelopes
class AcademicYearEnvelope(Envelope):
    data: AcademicYearResponse


class AcademicYearListEnvelope(Envelope):
    data: List[AcademicYearResponse]


class SemesterEnvelope(Envelope):
    data: SemesterResponse


class SemesterListEnvelope(Envelope):
    data: List[SemesterResponse]


class GradeLevelEnvelope(Envelope):
    grade_level: GradeLevelResponse


class GradeLevelListEnvelope(Envelope):
    grade_levels: List[GradeLevelStatsResponse]


class ClassRoomEnvelope(Envelope):
    data: ClassRoomResponse


class ClassRoomListEnvelope(Envelope):
    class_rooms: List[ClassRoomResponse]
    data: List[ClassRoomResponse]


class SpecialLocationEnvelope(Envelope):
    data: SpecialLocationResponse


class SpecialLocationListEnvelope(Envelope):
    data: List[SpecialLocationResponse]


class SubjectEnvelope(Envelope):
    data: SubjectResponse


class SubjectListEnvelope(Envelope):
    data: List[SubjectResponse]


class MessageEnvelope(Envelope):
    message: str
