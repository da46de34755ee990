from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from school_portal.core.logging import logger
from school_portal.models import (
    AcademicYear,
    ClassRoom,
    Semester,
    SpecialLocation,
    Student,
    Subject,
    Teacher,
    TimeSlot,
    Timetable,
)
from school_portal.schemas.academic.responses import ClassRoomBrief, SpecialLocationResponse, SubjectResponse
from school_portal.schemas.enums import UserRoleEnum
from school_portal.schemas.timetable.requests import TimeSlotCreate, TimetableEntryCreate
from school_portal.schemas.timetable.responses import (
    ClassTimetable,
    TimeSlotResponse,
    WeekDay,
    WeekSlot,
    WeekSlotEntry,
    WeekSlotTeacher,
)
from school_portal.services.base_service import BaseService

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DAY_NAMES_AR = ["الأحد", "الاثنين", "الثلاثاء", "الأربعاء", "الخميس", "الجمعة", "السبت"]

ENTRY_LOAD_OPTIONS = (
    selectinload(Timetable.class_room).selectinload(ClassRoom.grade_level),
    selectinload(Timetable.subject),
    selectinload(Timetable.teacher).selectinload(Teacher.user),
    selectinload(Timetable.special_location),
    selectinload(Timetable.time_slot),
)


class TimetableService(BaseService):
    """Time slots, conflict lookups, class week grids and entry creation"""

    # Time slots

    async def list_time_slots(self) -> List[TimeSlot]:
        result = await self.db.execute(
            select(TimeSlot)
            .where(TimeSlot.is_active.is_(True))
            .order_by(TimeSlot.slot_order)
        )
        return list(result.scalars().all())

    async def create_time_slot(self, data: TimeSlotCreate) -> TimeSlot:
        async with self.transaction():
            time_slot = TimeSlot(
                name=data.name,
                name_ar=data.name_ar,
                start_time=data.start_time,
                end_time=data.end_time,
                slot_order=data.slot_order,
                is_break=data.is_break,
                is_active=True,
            )
            self.db.add(time_slot)
        logger.info(f"Created time slot {time_slot.id} ({time_slot.start_time}-{time_slot.end_time})")
        return time_slot

    # Conflicts

    def _slot_query(self, day_of_week: int, time_slot_id: int, semester_id: int, exclude_class_id: Optional[int]):
        query = (
            select(Timetable)
            .where(
                Timetable.day_of_week == day_of_week,
                Timetable.time_slot_id == time_slot_id,
                Timetable.semester_id == semester_id,
                Timetable.is_active.is_(True),
            )
            .options(*ENTRY_LOAD_OPTIONS)
            .order_by(Timetable.id)
        )
        if exclude_class_id is not None:
            query = query.where(Timetable.class_room_id != exclude_class_id)
        return query

    async def find_room_conflicts(
        self,
        room_id: Optional[int],
        day_of_week: int,
        time_slot_id: int,
        semester_id: int,
        exclude_class_id: Optional[int] = None
    ) -> List[Timetable]:
        """Active entries already holding the special location in that slot"""
        if room_id is None:
            return []
        query = self._slot_query(day_of_week, time_slot_id, semester_id, exclude_class_id)
        result = await self.db.execute(query.where(Timetable.special_location_id == room_id))
        return list(result.scalars().all())

    async def find_teacher_conflicts(
        self,
        teacher_id: int,
        day_of_week: int,
        time_slot_id: int,
        semester_id: int,
        exclude_class_id: Optional[int] = None
    ) -> List[Timetable]:
        """Active entries already booking the teacher in that slot"""
        query = self._slot_query(day_of_week, time_slot_id, semester_id, exclude_class_id)
        result = await self.db.execute(query.where(Timetable.teacher_id == teacher_id))
        return list(result.scalars().all())

    async def find_class_conflicts(
        self,
        class_room_id: int,
        day_of_week: int,
        time_slot_id: int,
        semester_id: int
    ) -> List[Timetable]:
        query = self._slot_query(day_of_week, time_slot_id, semester_id, None)
        result = await self.db.execute(query.where(Timetable.class_room_id == class_room_id))
        return list(result.scalars().all())

    # Class timetable

    async def resolve_class_for(self, role: str, user_id: int, class_id: Optional[int]) -> int:
        """
        Decide which classroom a requester may read.

        Students default to (and are limited to) their own classroom, teachers
        must have at least one timetable entry in the classroom.
        """
        if role == UserRoleEnum.STUDENT:
            own_class_id = await self.db.scalar(
                select(Student.class_room_id).where(Student.user_id == user_id)
            )
            if own_class_id is None:
                raise ValidationError("Student not assigned to a class")
            if class_id is not None and class_id != own_class_id:
                raise PermissionDenied()
            return own_class_id

        if class_id is None:
            raise ValidationError("classId parameter is required")

        if role == UserRoleEnum.TEACHER:
            teaches = await self.db.scalar(
                select(Timetable.id)
                .join(Teacher, Timetable.teacher_id == Teacher.id)
                .where(Timetable.class_room_id == class_id, Teacher.user_id == user_id)
                .limit(1)
            )
            if teaches is None:
                raise PermissionDenied()
        elif role != UserRoleEnum.ADMIN:
            raise PermissionDenied()

        return class_id

    async def get_database_active_semester_id(self) -> int:
        semester_id = await self.db.scalar(
            select(Semester.id)
            .join(AcademicYear, Semester.academic_year_id == AcademicYear.id)
            .where(Semester.is_active.is_(True))
            .order_by(AcademicYear.is_active.desc(), Semester.id.desc())
            .limit(1)
        )
        if semester_id is None:
            raise ValidationError("No active semester found in the system")
        return semester_id

    async def get_class_timetable(
        self,
        class_id: int,
        semester_id: int,
        day_of_week: Optional[int] = None
    ) -> ClassTimetable:
        """Week grid: every day, every active time slot, with the entry filling it if any"""
        result = await self.db.execute(
            select(ClassRoom)
            .where(ClassRoom.id == class_id)
            .options(selectinload(ClassRoom.grade_level))
        )
        class_room = result.scalar_one_or_none()
        if not class_room:
            raise NotFoundError("Class not found")

        query = (
            select(Timetable)
            .where(
                Timetable.class_room_id == class_id,
                Timetable.semester_id == semester_id,
                Timetable.is_active.is_(True),
            )
            .options(*ENTRY_LOAD_OPTIONS)
        )
        if day_of_week is not None:
            query = query.where(Timetable.day_of_week == day_of_week)
        entries = (await self.db.execute(query)).scalars().all()
        by_cell = {(entry.day_of_week, entry.time_slot_id): entry for entry in entries}

        time_slots = await self.list_time_slots()

        week = []
        for day in range(7):
            slots = []
            for time_slot in time_slots:
                entry = by_cell.get((day, time_slot.id))
                slots.append(WeekSlot(
                    time_slot=TimeSlotResponse.model_validate(time_slot),
                    entry=self._week_entry(entry) if entry else None,
                ))
            week.append(WeekDay(
                day=day,
                day_name=DAY_NAMES[day],
                day_name_ar=DAY_NAMES_AR[day],
                slots=slots,
            ))

        return ClassTimetable(class_room=ClassRoomBrief.model_validate(class_room), timetable=week)

    @staticmethod
    def _week_entry(entry: Timetable) -> WeekSlotEntry:
        teacher = None
        if entry.teacher:
            teacher = WeekSlotTeacher(
                id=entry.teacher.id,
                employee_id=entry.teacher.employee_id,
                name=entry.teacher.user.name if entry.teacher.user else "",
            )
        return WeekSlotEntry(
            id=entry.id,
            subject=SubjectResponse.model_validate(entry.subject) if entry.subject else None,
            teacher=teacher,
            room=SpecialLocationResponse.model_validate(entry.special_location) if entry.special_location else None,
            notes=entry.notes,
        )

    # Entries

    async def get_entry(self, entry_id: int) -> Timetable:
        result = await self.db.execute(
            select(Timetable)
            .where(Timetable.id == entry_id)
            .options(*ENTRY_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise NotFoundError("Timetable entry not found")
        return entry

    async def create_entry(self, data: TimetableEntryCreate) -> Timetable:
        """Create an entry once the class slot, teacher and room are all free"""
        for model, key, label in (
            (ClassRoom, data.class_room_id, "classroom"),
            (Subject, data.subject_id, "subject"),
            (Teacher, data.teacher_id, "teacher"),
            (TimeSlot, data.time_slot_id, "time slot"),
            (Semester, data.semester_id, "semester"),
        ):
            if not await self.db.get(model, key):
                raise ValidationError(f"Invalid {label}")
        if data.special_location_id is not None and not await self.db.get(SpecialLocation, data.special_location_id):
            raise ValidationError("Invalid special location")

        slot = (data.day_of_week, data.time_slot_id, data.semester_id)
        clashes = {
            "classroom": await self.find_class_conflicts(data.class_room_id, *slot),
            "teacher": await self.find_teacher_conflicts(data.teacher_id, *slot, data.class_room_id),
            "room": await self.find_room_conflicts(data.special_location_id, *slot, data.class_room_id),
        }
        clashes = {kind: entries for kind, entries in clashes.items() if entries}
        if clashes:
            logger.info(f"Timetable entry rejected, conflicts on {sorted(clashes)}")
            raise ConflictError(
                "Timetable slot conflicts with existing entries",
                details={kind: [entry.id for entry in entries] for kind, entries in clashes.items()},
            )

        async with self.transaction():
            entry = Timetable(
                class_room_id=data.class_room_id,
                subject_id=data.subject_id,
                teacher_id=data.teacher_id,
                time_slot_id=data.time_slot_id,
                semester_id=data.semester_id,
                special_location_id=data.special_location_id,
                day_of_week=data.day_of_week,
                notes=data.notes,
                is_active=True,
            )
            self.db.add(entry)

        logger.info(f"Created timetable entry {entry.id} for class {entry.class_room_id}")
        return await self.get_entry(entry.id)
