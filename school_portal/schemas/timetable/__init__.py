from .requests import TimeSlotCreate, TimetableEntryCreate
from .responses import (
    TimeSlotResponse,
    TimetableEntryResponse,
    WeekSlotTeacher,
    WeekSlotEntry,
    WeekSlot,
    WeekDay,
    ClassTimetable,
    TimeSlotEnvelope,
    TimeSlotListEnvelope,
    ConflictsEnvelope,
    ClassTimetableEnvelope,
    TimetableEntryEnvelope,
)
