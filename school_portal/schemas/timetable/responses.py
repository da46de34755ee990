from typing import List, Optional

from pydantic import Field

from school_portal.schemas.academic.responses import (
    ClassRoomBrief,
    SpecialLocationResponse,
    SubjectResponse,
)
from school_portal.schemas.base import CamelModel, Envelope
from school_portal.schemas.people.responses import TeacherResponse


class TimeSlotResponse(CamelModel):
    id: int
    name: str
    name_ar: Optional[str] = None
    start_time: str
    end_time: str
    slot_order: int
    is_break: bool
    is_active: bool


class TimetableEntryResponse(CamelModel):
    id: int
    class_room_id: int
    subject_id: int
    teacher_id: int
    time_slot_id: int
    semester_id: int
    special_location_id: Optional[int] = None
    day_of_week: int
    notes: Optional[str] = None
    is_active: bool
    class_room: Optional[ClassRoomBrief] = None
    subject: Optional[SubjectResponse] = None
    teacher: Optional[TeacherResponse] = None
    special_location: Optional[SpecialLocationResponse] = None
    time_slot: Optional[TimeSlotResponse] = None


class WeekSlotTeacher(CamelModel):
    id: int
    employee_id: Optional[str] = None
    name: str


class WeekSlotEntry(CamelModel):
    id: int
    subject: Optional[SubjectResponse] = None
    teacher: Optional[WeekSlotTeacher] = None
    room: Optional[SpecialLocationResponse] = None
    notes: Optional[str] = None


class WeekSlot(CamelModel):
    time_slot: TimeSlotResponse
    entry: Optional[WeekSlotEntry] = None


class WeekDay(CamelModel):
    day: int
    day_name: str
    day_name_ar: str
    slots: List[WeekSlot]


class ClassTimetable(CamelModel):
    class_room: ClassRoomBrief = Field(alias="class")
    timetable: List[WeekDay]


# Envelopes
class TimeSlotEnvelope(Envelope):
    data: TimeSlotResponse


class TimeSlotListEnvelope(Envelope):
    data: List[TimeSlotResponse]


class ConflictsEnvelope(Envelope):
    conflicts: List[TimetableEntryResponse]
    has_conflicts: bool


class ClassTimetableEnvelope(Envelope):
    data: ClassTimetable


class TimetableEntryEnvelope(Envelope):
    data: TimetableEntryResponse
