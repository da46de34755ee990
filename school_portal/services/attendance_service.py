from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import (
    Attendance,
    ClassRoom,
    GradeLevel,
    Parent,
    Student,
    StudentParent,
    Teacher,
    Timetable,
)
from school_portal.schemas.academic.responses import SubjectResponse
from school_portal.schemas.coursework.requests import AttendanceMarkRequest
from school_portal.schemas.coursework.responses import AttendanceRecordResponse, AttendanceStatistics
from school_portal.schemas.enums import AttendanceStatus, UserRoleEnum
from school_portal.schemas.timetable.responses import TimeSlotResponse, WeekSlotTeacher
from school_portal.services.base_service import BaseService

RECENT_RECORDS_LIMIT = 100

RECORD_LOAD_OPTIONS = (
    selectinload(Attendance.timetable).selectinload(Timetable.subject),
    selectinload(Attendance.timetable).selectinload(Timetable.time_slot),
    selectinload(Attendance.teacher).selectinload(Teacher.user),
)


def to_record_response(record: Attendance) -> AttendanceRecordResponse:
    lesson = record.timetable
    teacher = None
    if record.teacher:
        teacher = WeekSlotTeacher(
            id=record.teacher.id,
            employee_id=record.teacher.employee_id,
            name=record.teacher.user.name if record.teacher.user else "",
        )
    return AttendanceRecordResponse(
        id=record.id,
        date=record.date,
        status=record.status,
        remarks=record.remarks,
        class_room_id=record.class_room_id,
        subject=SubjectResponse.model_validate(lesson.subject) if lesson and lesson.subject else None,
        time_slot=TimeSlotResponse.model_validate(lesson.time_slot) if lesson and lesson.time_slot else None,
        teacher=teacher,
    )


def summarize(records: List[Attendance]) -> AttendanceStatistics:
    """Per-status counts; the rate counts PRESENT and LATE as attended"""
    counts = {status: 0 for status in AttendanceStatus}
    for record in records:
        counts[AttendanceStatus(record.status)] += 1

    total = len(records)
    attended = counts[AttendanceStatus.PRESENT] + counts[AttendanceStatus.LATE]
    return AttendanceStatistics(
        total=total,
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        excused=counts[AttendanceStatus.EXCUSED],
        attendance_rate=round(attended / total * 100, 2) if total else 0,
    )


class AttendanceService(BaseService):

    async def grade_levels_for(self, role: str, user_id: int) -> List[GradeLevel]:
        """
        Grade levels the requester can take or view attendance for.

        ADMIN: all active. TEACHER: those of classrooms it has timetable
        entries in. PARENT: those of its children's classrooms.
        """
        query = (
            select(GradeLevel)
            .where(GradeLevel.is_active.is_(True))
            .order_by(GradeLevel.level)
        )

        if role == UserRoleEnum.ADMIN:
            pass
        elif role == UserRoleEnum.TEACHER:
            teacher_id = await self.db.scalar(select(Teacher.id).where(Teacher.user_id == user_id))
            if teacher_id is None:
                raise PermissionDenied("Teacher access required")
            taught = (
                select(ClassRoom.grade_level_id)
                .join(Timetable, Timetable.class_room_id == ClassRoom.id)
                .where(Timetable.teacher_id == teacher_id)
            )
            query = query.where(GradeLevel.id.in_(taught))
        elif role == UserRoleEnum.PARENT:
            parent_id = await self.db.scalar(select(Parent.id).where(Parent.user_id == user_id))
            if parent_id is None:
                raise PermissionDenied("Parent access required")
            children = (
                select(ClassRoom.grade_level_id)
                .join(Student, Student.class_room_id == ClassRoom.id)
                .join(StudentParent, StudentParent.student_id == Student.id)
                .where(StudentParent.parent_id == parent_id)
            )
            query = query.where(GradeLevel.id.in_(children))
        else:
            raise PermissionDenied()

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def records_for_student(self, student_id: int) -> List[AttendanceRecordResponse]:
        """Most recent attendance records of one student"""
        result = await self.db.execute(
            select(Attendance)
            .where(Attendance.student_id == student_id)
            .options(*RECORD_LOAD_OPTIONS)
            .order_by(Attendance.date.desc(), Attendance.id.desc())
            .limit(RECENT_RECORDS_LIMIT)
        )
        return [to_record_response(record) for record in result.scalars().all()]

    async def history_with_statistics(
        self,
        student_id: int,
        subject_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Tuple[List[AttendanceRecordResponse], AttendanceStatistics]:
        query = (
            select(Attendance)
            .where(Attendance.student_id == student_id)
            .options(*RECORD_LOAD_OPTIONS)
            .order_by(Attendance.date.desc(), Attendance.id.desc())
        )
        if subject_id is not None:
            query = query.join(Timetable, Attendance.timetable_id == Timetable.id).where(
                Timetable.subject_id == subject_id
            )
        if start_date is not None:
            query = query.where(Attendance.date >= start_date)
        if end_date is not None:
            query = query.where(Attendance.date <= end_date)

        records = list((await self.db.execute(query)).scalars().all())
        return [to_record_response(record) for record in records], summarize(records)

    async def mark_attendance(self, role: str, user_id: int, data: AttendanceMarkRequest) -> Tuple[int, int]:
        """
        Upsert one lesson's attendance for a classroom and date.

        Returns ``(created, updated)``. The whole batch is written in one commit.
        """
        lesson_query = (
            select(Timetable)
            .where(
                Timetable.class_room_id == data.class_room_id,
                Timetable.subject_id == data.subject_id,
                Timetable.is_active.is_(True),
            )
            .order_by(Timetable.id)
            .limit(1)
        )
        if role == UserRoleEnum.TEACHER:
            teacher_id = await self.db.scalar(select(Teacher.id).where(Teacher.user_id == user_id))
            if teacher_id is None:
                raise PermissionDenied("Teacher access required")
            lesson_query = lesson_query.where(Timetable.teacher_id == teacher_id)

        lesson = await self.db.scalar(lesson_query)
        if not lesson:
            raise NotFoundError("No timetable entry found for this subject and classroom")

        student_ids = [entry.student_id for entry in data.records]
        enrolled = set((await self.db.execute(
            select(Student.id).where(
                Student.id.in_(student_ids),
                Student.class_room_id == data.class_room_id,
            )
        )).scalars().all())
        outsiders = [student_id for student_id in student_ids if student_id not in enrolled]
        if outsiders:
            raise ValidationError(f"Student {outsiders[0]} is not in this classroom")

        existing = {
            record.student_id: record
            for record in (await self.db.execute(
                select(Attendance).where(
                    Attendance.timetable_id == lesson.id,
                    Attendance.date == data.date,
                    Attendance.student_id.in_(student_ids),
                )
            )).scalars().all()
        }

        created = updated = 0
        async with self.transaction():
            for entry in data.records:
                record = existing.get(entry.student_id)
                if record:
                    record.status = entry.status
                    record.remarks = entry.remarks
                    record.teacher_id = lesson.teacher_id
                    updated += 1
                else:
                    record = Attendance(
                        student_id=entry.student_id,
                        teacher_id=lesson.teacher_id,
                        class_room_id=data.class_room_id,
                        timetable_id=lesson.id,
                        date=data.date,
                        status=entry.status,
                        remarks=entry.remarks,
                    )
                    self.db.add(record)
                    existing[entry.student_id] = record
                    created += 1

        logger.info(
            f"Attendance for class {data.class_room_id} on {data.date}: {created} created, {updated} updated"
        )
        return created, updated
