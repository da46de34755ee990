from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import (
    AcademicYear,
    Assignment,
    Attendance,
    ClassRoom,
    Exam,
    GradeLevel,
    Student,
    Teacher,
    Timetable,
)
from school_portal.schemas.academic.requests import ClassRoomCreate, ClassRoomUpdate
from school_portal.schemas.academic.responses import ClassRoomResponse
from school_portal.schemas.enums import UserRoleEnum
from school_portal.services.base_service import BaseService


class ClassService(BaseService):
    """Classroom listing per role and classroom administration"""

    async def _student_counts(self, class_room_ids: List[int]) -> dict:
        if not class_room_ids:
            return {}
        result = await self.db.execute(
            select(Student.class_room_id, func.count(Student.id))
            .where(Student.class_room_id.in_(class_room_ids))
            .group_by(Student.class_room_id)
        )
        return dict(result.all())

    async def _to_responses(self, class_rooms: List[ClassRoom]) -> List[ClassRoomResponse]:
        counts = await self._student_counts([class_room.id for class_room in class_rooms])
        responses = []
        for class_room in class_rooms:
            response = ClassRoomResponse.model_validate(class_room)
            response.student_count = counts.get(class_room.id, 0)
            responses.append(response)
        return responses

    async def list_classes(
        self,
        role: str,
        user_id: int,
        grade_level: Optional[int] = None
    ) -> List[ClassRoomResponse]:
        """
        Classrooms visible to the requester.

        ADMIN sees every active classroom, TEACHER those it is class teacher of
        or teaches in, STUDENT only its own classroom. PARENT is refused.
        """
        query = (
            select(ClassRoom)
            .join(GradeLevel, ClassRoom.grade_level_id == GradeLevel.id)
            .where(ClassRoom.is_active.is_(True))
            .options(selectinload(ClassRoom.grade_level))
            .order_by(GradeLevel.level, ClassRoom.section)
        )

        if grade_level is not None:
            query = query.where(GradeLevel.level == grade_level)

        if role == UserRoleEnum.ADMIN:
            pass
        elif role == UserRoleEnum.TEACHER:
            teacher_id = await self.db.scalar(select(Teacher.id).where(Teacher.user_id == user_id))
            if teacher_id is None:
                raise NotFoundError("Teacher profile not found")
            taught = select(Timetable.class_room_id).where(Timetable.teacher_id == teacher_id)
            query = query.where(
                or_(ClassRoom.class_teacher_id == teacher_id, ClassRoom.id.in_(taught))
            )
        elif role == UserRoleEnum.STUDENT:
            class_room_id = await self.db.scalar(
                select(Student.class_room_id).where(Student.user_id == user_id)
            )
            if class_room_id is None:
                return []
            query = query.where(ClassRoom.id == class_room_id)
        else:
            raise PermissionDenied("Forbidden")

        result = await self.db.execute(query)
        return await self._to_responses(list(result.scalars().all()))

    async def list_all_classrooms(self) -> List[ClassRoomResponse]:
        result = await self.db.execute(
            select(ClassRoom)
            .join(GradeLevel, ClassRoom.grade_level_id == GradeLevel.id)
            .options(selectinload(ClassRoom.grade_level))
            .order_by(GradeLevel.level, ClassRoom.section)
        )
        return await self._to_responses(list(result.scalars().all()))

    async def get_class_room(self, class_room_id: int) -> ClassRoom:
        result = await self.db.execute(
            select(ClassRoom)
            .where(ClassRoom.id == class_room_id)
            .options(selectinload(ClassRoom.grade_level))
            .execution_options(populate_existing=True)
        )
        class_room = result.scalar_one_or_none()
        if not class_room:
            raise NotFoundError("Class not found")
        return class_room

    async def create_classroom(self, data: ClassRoomCreate) -> ClassRoomResponse:
        """Create a classroom; section and room number are unique within an academic year"""
        duplicate_section = await self.db.execute(
            select(ClassRoom.id).where(
                and_(
                    ClassRoom.grade_level_id == data.grade_level_id,
                    ClassRoom.section == data.section,
                    ClassRoom.academic_year_id == data.academic_year_id,
                )
            )
        )
        if duplicate_section.first():
            raise ValidationError(
                "A classroom with this grade level and section already exists for this academic year"
            )

        duplicate_room = await self.db.execute(
            select(ClassRoom.id).where(
                and_(
                    ClassRoom.room_number == data.room_number,
                    ClassRoom.academic_year_id == data.academic_year_id,
                )
            )
        )
        if duplicate_room.first():
            raise ValidationError("Room number is already taken for this academic year")

        grade_level = await self.db.get(GradeLevel, data.grade_level_id)
        if not grade_level:
            raise NotFoundError("Grade level not found")

        if not await self.db.get(AcademicYear, data.academic_year_id):
            raise ValidationError("Invalid academic year")

        if data.class_teacher_id is not None and not await self.db.get(Teacher, data.class_teacher_id):
            raise ValidationError("Invalid class teacher")

        async with self.transaction():
            class_room = ClassRoom(
                name=data.name or f"{grade_level.name} - {data.section}",
                name_ar=data.name_ar or f"{grade_level.name_ar} - {data.section}",
                section=data.section,
                room_number=data.room_number,
                capacity=data.capacity,
                grade_level_id=data.grade_level_id,
                academic_year_id=data.academic_year_id,
                class_teacher_id=data.class_teacher_id,
                is_active=True,
            )
            self.db.add(class_room)

        logger.info(f"Created classroom {class_room.id} ({class_room.name})")
        created = await self.get_class_room(class_room.id)
        return (await self._to_responses([created]))[0]

    async def get_classroom(self, class_room_id: int) -> ClassRoomResponse:
        return (await self._to_responses([await self._classroom_or_404(class_room_id)]))[0]

    async def _classroom_or_404(self, class_room_id: int) -> ClassRoom:
        try:
            return await self.get_class_room(class_room_id)
        except NotFoundError:
            raise NotFoundError("Classroom not found")

    async def update_classroom(self, class_room_id: int, data: ClassRoomUpdate) -> ClassRoomResponse:
        class_room = await self._classroom_or_404(class_room_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        section = fields.get("section") or class_room.section
        grade_level_id = fields.get("grade_level_id") or class_room.grade_level_id
        if (section, grade_level_id) != (class_room.section, class_room.grade_level_id):
            duplicate_section = await self.db.execute(
                select(ClassRoom.id).where(
                    ClassRoom.grade_level_id == grade_level_id,
                    ClassRoom.section == section,
                    ClassRoom.academic_year_id == class_room.academic_year_id,
                    ClassRoom.id != class_room_id,
                )
            )
            if duplicate_section.first():
                raise ValidationError(
                    "A classroom with this grade level and section already exists for this academic year"
                )

        room_number = fields.get("room_number")
        if room_number and room_number != class_room.room_number:
            duplicate_room = await self.db.execute(
                select(ClassRoom.id).where(
                    ClassRoom.room_number == room_number,
                    ClassRoom.academic_year_id == class_room.academic_year_id,
                    ClassRoom.id != class_room_id,
                )
            )
            if duplicate_room.first():
                raise ValidationError("Room number is already taken for this academic year")

        if grade_level_id != class_room.grade_level_id and not await self.db.get(GradeLevel, grade_level_id):
            raise NotFoundError("Grade level not found")

        if fields.get("class_teacher_id") is not None and not await self.db.get(Teacher, fields["class_teacher_id"]):
            raise ValidationError("Invalid class teacher")

        async with self.transaction():
            for key, value in fields.items():
                if value is not None or key in ("name_ar", "class_teacher_id"):
                    setattr(class_room, key, value)

        logger.info(f"Updated classroom {class_room_id}: {sorted(fields)}")
        return await self.get_classroom(class_room_id)

    async def delete_classroom(self, class_room_id: int) -> None:
        """Refused while anything still refers to the classroom"""
        class_room = await self._classroom_or_404(class_room_id)

        dependents = (
            (Student, Student.class_room_id, "Cannot delete classroom with enrolled students"),
            (Timetable, Timetable.class_room_id, "Cannot delete classroom with timetable entries"),
            (Attendance, Attendance.class_room_id, "Cannot delete classroom with attendance records"),
            (Assignment, Assignment.class_room_id, "Cannot delete classroom with assignments"),
            (Exam, Exam.class_room_id, "Cannot delete classroom with exams"),
        )
        for model, column, message in dependents:
            in_use = await self.db.scalar(
                select(func.count()).select_from(model).where(column == class_room_id)
            )
            if in_use:
                raise ValidationError(message)

        async with self.transaction():
            await self.db.delete(class_room)
        logger.info(f"Deleted classroom {class_room_id}")
