from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.errors import ValidationError
from school_portal.core.permissions import require_admin
from school_portal.core.semester_scope import get_active_semester_id
from school_portal.models import Timetable
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.enums import UserRoleEnum
from school_portal.schemas.timetable import (
    ClassTimetableEnvelope,
    ConflictsEnvelope,
    TimeSlotCreate,
    TimeSlotEnvelope,
    TimeSlotListEnvelope,
    TimeSlotResponse,
    TimetableEntryCreate,
    TimetableEntryEnvelope,
    TimetableEntryResponse,
)
from school_portal.services import TimetableService

router = APIRouter(tags=["Timetable"])


def get_timetable_service(db: AsyncSession = Depends(get_db)) -> TimetableService:
    return TimetableService(db)


def _int_param(request: Request, name: str) -> Optional[int]:
    """Optional integer query parameter; blank counts as absent"""
    value = request.query_params.get(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} parameter")


def _conflicts(entries: List[Timetable]) -> ConflictsEnvelope:
    return ConflictsEnvelope(
        conflicts=[TimetableEntryResponse.model_validate(entry) for entry in entries],
        has_conflicts=bool(entries),
    )


# Time slots

@router.get("/time-slots", response_model=TimeSlotListEnvelope)
async def list_time_slots(
    claims: TokenClaims = Depends(get_current_claims),
    service: TimetableService = Depends(get_timetable_service)
) -> TimeSlotListEnvelope:
    time_slots = await service.list_time_slots()
    return TimeSlotListEnvelope(data=[TimeSlotResponse.model_validate(slot) for slot in time_slots])


@router.post("/time-slots", response_model=TimeSlotEnvelope, status_code=status.HTTP_201_CREATED)
async def create_time_slot(
    request: TimeSlotCreate,
    claims: TokenClaims = Depends(require_admin),
    service: TimetableService = Depends(get_timetable_service)
) -> TimeSlotEnvelope:
    time_slot = await service.create_time_slot(request)
    return TimeSlotEnvelope(data=TimeSlotResponse.model_validate(time_slot))


# Conflicts

@router.get("/conflicts/room", response_model=ConflictsEnvelope)
async def check_room_conflicts(
    request: Request,
    claims: TokenClaims = Depends(get_current_claims),
    service: TimetableService = Depends(get_timetable_service)
) -> ConflictsEnvelope:
    """Entries already using a special location in the given slot"""
    day_of_week = _int_param(request, "dayOfWeek")
    time_slot_id = _int_param(request, "timeSlotId")
    if day_of_week is None or time_slot_id is None:
        raise ValidationError("Missing required parameters: dayOfWeek or timeSlotId")
    semester_id = await get_active_semester_id(request)

    entries = await service.find_room_conflicts(
        _int_param(request, "roomId"),
        day_of_week,
        time_slot_id,
        semester_id,
        _int_param(request, "excludeClassId"),
    )
    return _conflicts(entries)


@router.get("/conflicts/teacher", response_model=ConflictsEnvelope)
async def check_teacher_conflicts(
    request: Request,
    claims: TokenClaims = Depends(get_current_claims),
    service: TimetableService = Depends(get_timetable_service)
) -> ConflictsEnvelope:
    """Entries already booking a teacher in the given slot"""
    teacher_id = _int_param(request, "teacherId")
    day_of_week = _int_param(request, "dayOfWeek")
    time_slot_id = _int_param(request, "timeSlotId")
    if teacher_id is None or day_of_week is None or time_slot_id is None:
        raise ValidationError("Missing required parameters")
    semester_id = await get_active_semester_id(request)

    entries = await service.find_teacher_conflicts(
        teacher_id,
        day_of_week,
        time_slot_id,
        semester_id,
        _int_param(request, "excludeClassId"),
    )
    return _conflicts(entries)


# Class timetables

@router.get("", response_model=ClassTimetableEnvelope)
async def get_class_timetable(
    request: Request,
    claims: TokenClaims = Depends(get_current_claims),
    service: TimetableService = Depends(get_timetable_service)
) -> ClassTimetableEnvelope:
    """
    Week grid of a classroom.

    Students always read their own classroom in the school's active semester;
    everyone else names the class and supplies the semester scope.
    """
    class_id = await service.resolve_class_for(claims.role, claims.user_id, _int_param(request, "classId"))

    if claims.role == UserRoleEnum.STUDENT:
        semester_id = await service.get_database_active_semester_id()
    else:
        semester_id = await get_active_semester_id(request)

    day_of_week = _int_param(request, "dayOfWeek")
    if day_of_week is not None and not 0 <= day_of_week <= 6:
        raise ValidationError("Invalid dayOfWeek parameter")

    timetable = await service.get_class_timetable(class_id, semester_id, day_of_week)
    return ClassTimetableEnvelope(data=timetable)


@router.post("", response_model=TimetableEntryEnvelope, status_code=status.HTTP_201_CREATED)
async def create_timetable_entry(
    request: TimetableEntryCreate,
    claims: TokenClaims = Depends(require_admin),
    service: TimetableService = Depends(get_timetable_service)
) -> TimetableEntryEnvelope:
    entry = await service.create_entry(request)
    return TimetableEntryEnvelope(data=TimetableEntryResponse.model_validate(entry))
