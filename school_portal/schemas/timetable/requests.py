import re
from typing import Optional

from pydantic import Field, field_validator, model_validator

from school_portal.schemas.base import CamelModel

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TimeSlotCreate(CamelModel):
    name: str = Field(min_length=1)
    name_ar: Optional[str] = None
    start_time: str
    end_time: str
    slot_order: int = Field(ge=1)
    is_break: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v

    @model_validator(mode="after")
    def validate_order(self) -> "TimeSlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class TimetableEntryCreate(CamelModel):
    class_room_id: int
    subject_id: int
    teacher_id: int
    time_slot_id: int
    semester_id: int
    day_of_week: int = Field(ge=0, le=6)
    special_location_id: Optional[int] = None
    notes: Optional[str] = None
