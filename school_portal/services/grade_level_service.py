from typing import List, Optional

from sqlalchemy import func, select

from school_portal.core.errors import ConflictError, NotFoundError, ValidationError
from school_portal.core.logging import logger
from school_portal.models import ClassRoom, GradeLevel, Student
from school_portal.schemas.academic.requests import GradeLevelCreate, GradeLevelUpdate
from school_portal.schemas.academic.responses import GradeLevelStatsResponse
from school_portal.services.base_service import BaseService


class GradeLevelService(BaseService):

    async def list_grade_levels(self) -> List[GradeLevelStatsResponse]:
        """Active grade levels ordered by level, with class and student totals"""
        result = await self.db.execute(
            select(GradeLevel)
            .where(GradeLevel.is_active.is_(True))
            .order_by(GradeLevel.level)
        )
        grade_levels = result.scalars().all()

        class_counts = dict((await self.db.execute(
            select(ClassRoom.grade_level_id, func.count(ClassRoom.id))
            .group_by(ClassRoom.grade_level_id)
        )).all())
        student_counts = dict((await self.db.execute(
            select(ClassRoom.grade_level_id, func.count(Student.id))
            .join(Student, Student.class_room_id == ClassRoom.id)
            .group_by(ClassRoom.grade_level_id)
        )).all())

        responses = []
        for grade_level in grade_levels:
            response = GradeLevelStatsResponse.model_validate(grade_level)
            response.total_classes = class_counts.get(grade_level.id, 0)
            response.total_students = student_counts.get(grade_level.id, 0)
            responses.append(response)
        return responses

    async def get_grade_level(self, grade_level_id: int) -> GradeLevel:
        grade_level = await self.db.get(GradeLevel, grade_level_id)
        if not grade_level:
            raise NotFoundError("Grade level not found")
        return grade_level

    async def _ensure_level_free(self, level: int, exclude_id: Optional[int] = None) -> None:
        query = select(GradeLevel.id).where(GradeLevel.level == level)
        if exclude_id:
            query = query.where(GradeLevel.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.first():
            raise ConflictError("Grade level already exists")

    async def create_grade_level(self, data: GradeLevelCreate) -> GradeLevel:
        await self._ensure_level_free(data.level)

        async with self.transaction():
            grade_level = GradeLevel(
                name=data.name,
                name_ar=data.name_ar,
                level=data.level,
                description=data.description,
                is_active=True,
            )
            self.db.add(grade_level)

        logger.info(f"Created grade level {grade_level.id} (level {grade_level.level})")
        return grade_level

    async def update_grade_level(self, grade_level_id: int, data: GradeLevelUpdate) -> GradeLevel:
        grade_level = await self.get_grade_level(grade_level_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        if fields.get("level") is not None and fields["level"] != grade_level.level:
            try:
                await self._ensure_level_free(fields["level"], exclude_id=grade_level_id)
            except ConflictError:
                raise ConflictError("Grade level number already exists")

        async with self.transaction():
            for key, value in fields.items():
                if value is not None or key == "description":
                    setattr(grade_level, key, value)

        await self.db.refresh(grade_level)
        return grade_level

    async def delete_grade_level(self, grade_level_id: int) -> None:
        grade_level = await self.get_grade_level(grade_level_id)

        class_count = await self.db.scalar(
            select(func.count(ClassRoom.id)).where(ClassRoom.grade_level_id == grade_level_id)
        )
        if class_count:
            raise ConflictError("Cannot delete grade level with associated classrooms")

        async with self.transaction():
            await self.db.delete(grade_level)
        logger.info(f"Deleted grade level {grade_level_id}")
