from typing import List

from sqlalchemy import delete, func, select

from school_portal.core.errors import ConflictError, NotFoundError, ValidationError
from school_portal.core.logging import logger
from school_portal.models import (
    Assignment,
    Exam,
    Grade,
    GradeLevel,
    SpecialLocation,
    Subject,
    TeacherSubject,
    Timetable,
)
from school_portal.schemas.academic.requests import (
    SpecialLocationCreate,
    SpecialLocationUpdate,
    SubjectCreate,
    SubjectUpdate,
)
from school_portal.services.base_service import BaseService


class CatalogService(BaseService):
    """Reference data: special locations and subjects"""

    async def list_special_locations(self) -> List[SpecialLocation]:
        result = await self.db.execute(
            select(SpecialLocation)
            .where(SpecialLocation.is_active.is_(True))
            .order_by(SpecialLocation.name)
        )
        return list(result.scalars().all())

    async def create_special_location(self, data: SpecialLocationCreate) -> SpecialLocation:
        existing = await self.db.execute(
            select(SpecialLocation.id).where(SpecialLocation.name == data.name)
        )
        if existing.first():
            raise ValidationError("Special location with this name already exists")

        async with self.transaction():
            location = SpecialLocation(
                name=data.name,
                name_ar=data.name_ar,
                type=data.type.upper(),
                capacity=data.capacity,
                description=data.description,
                is_active=True,
            )
            self.db.add(location)

        logger.info(f"Created special location {location.id} ({location.name})")
        return location

    async def get_special_location(self, location_id: int) -> SpecialLocation:
        location = await self.db.get(SpecialLocation, location_id)
        if not location:
            raise NotFoundError("Special location not found")
        return location

    async def update_special_location(self, location_id: int, data: SpecialLocationUpdate) -> SpecialLocation:
        location = await self.get_special_location(location_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        if fields.get("name") and fields["name"] != location.name:
            existing = await self.db.execute(
                select(SpecialLocation.id).where(
                    SpecialLocation.name == fields["name"],
                    SpecialLocation.id != location_id,
                )
            )
            if existing.first():
                raise ValidationError("Special location with this name already exists")
        if fields.get("type"):
            fields["type"] = fields["type"].upper()

        async with self.transaction():
            for key, value in fields.items():
                if value is not None or key in ("name_ar", "capacity", "description"):
                    setattr(location, key, value)

        await self.db.refresh(location)
        return location

    async def delete_special_location(self, location_id: int) -> None:
        location = await self.get_special_location(location_id)

        in_use = await self.db.scalar(
            select(func.count()).select_from(Timetable).where(Timetable.special_location_id == location_id)
        )
        if in_use:
            raise ValidationError("Cannot delete special location with timetable entries")

        async with self.transaction():
            await self.db.delete(location)
        logger.info(f"Deleted special location {location_id}")

    async def list_subjects(self) -> List[Subject]:
        result = await self.db.execute(
            select(Subject)
            .where(Subject.is_active.is_(True))
            .order_by(Subject.name)
        )
        return list(result.scalars().all())

    async def create_subject(self, data: SubjectCreate) -> Subject:
        code = data.code.strip().upper()
        existing = await self.db.execute(
            select(Subject.id).where(func.upper(Subject.code) == code)
        )
        if existing.first():
            raise ConflictError("Subject code already exists")

        if data.grade_level_id is not None and not await self.db.get(GradeLevel, data.grade_level_id):
            raise ValidationError("Invalid grade level")

        async with self.transaction():
            subject = Subject(
                name=data.name,
                name_ar=data.name_ar,
                code=code,
                description=data.description,
                grade_level_id=data.grade_level_id,
                is_active=True,
            )
            self.db.add(subject)

        logger.info(f"Created subject {subject.id} ({subject.code})")
        return subject

    async def get_subject(self, subject_id: int) -> Subject:
        subject = await self.db.get(Subject, subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        return subject

    async def update_subject(self, subject_id: int, data: SubjectUpdate) -> Subject:
        subject = await self.get_subject(subject_id)
        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        if fields.get("code"):
            fields["code"] = fields["code"].strip().upper()
            if fields["code"] != subject.code:
                existing = await self.db.execute(
                    select(Subject.id).where(
                        func.upper(Subject.code) == fields["code"],
                        Subject.id != subject_id,
                    )
                )
                if existing.first():
                    raise ConflictError("Subject code already exists")

        if fields.get("grade_level_id") is not None and not await self.db.get(GradeLevel, fields["grade_level_id"]):
            raise ValidationError("Invalid grade level")

        async with self.transaction():
            for key, value in fields.items():
                if value is not None or key in ("name_ar", "description", "grade_level_id"):
                    setattr(subject, key, value)

        await self.db.refresh(subject)
        return subject

    async def delete_subject(self, subject_id: int) -> None:
        """Refused while coursework or the timetable uses the subject; teacher links go with it"""
        subject = await self.get_subject(subject_id)

        for model in (Assignment, Exam, Grade, Timetable):
            in_use = await self.db.scalar(
                select(func.count()).select_from(model).where(model.subject_id == subject_id)
            )
            if in_use:
                raise ValidationError(
                    "Cannot delete subject with existing assignments, exams, grades or timetables. "
                    "Please deactivate instead."
                )

        async with self.transaction():
            await self.db.execute(delete(TeacherSubject).where(TeacherSubject.subject_id == subject_id))
            await self.db.delete(subject)
        logger.info(f"Deleted subject {subject_id}")
