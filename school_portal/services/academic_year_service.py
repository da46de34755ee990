from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, ValidationError
from school_portal.core.logging import logger
from school_portal.models import AcademicYear, Assignment, ClassRoom, Semester, Timetable
from school_portal.schemas.academic.requests import (
    AcademicYearCreate,
    AcademicYearUpdate,
    SemesterCreate,
    SemesterUpdate,
)
from school_portal.schemas.academic.responses import AcademicYearResponse
from school_portal.services.base_service import BaseService


class AcademicYearService(BaseService):
    """Academic years and their semesters, including the single-active rules"""

    async def _load_year(self, year_id: int) -> Optional[AcademicYear]:
        result = await self.db.execute(
            select(AcademicYear)
            .where(AcademicYear.id == year_id)
            .options(selectinload(AcademicYear.semesters))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _class_counts(self, year_ids: List[int]) -> dict:
        if not year_ids:
            return {}
        result = await self.db.execute(
            select(ClassRoom.academic_year_id, func.count(ClassRoom.id))
            .where(ClassRoom.academic_year_id.in_(year_ids))
            .group_by(ClassRoom.academic_year_id)
        )
        return dict(result.all())

    async def _to_response(self, year: AcademicYear) -> AcademicYearResponse:
        response = AcademicYearResponse.model_validate(year)
        response.class_count = (await self._class_counts([year.id])).get(year.id, 0)
        return response

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        query = select(AcademicYear.id).where(AcademicYear.name == name)
        if exclude_id:
            query = query.where(AcademicYear.id != exclude_id)
        existing = await self.db.execute(query)
        if existing.first():
            raise ValidationError("Academic year with this name already exists")

    async def list_years(self) -> List[AcademicYearResponse]:
        result = await self.db.execute(
            select(AcademicYear)
            .options(selectinload(AcademicYear.semesters))
            .order_by(AcademicYear.start_date.desc())
        )
        years = result.scalars().all()
        counts = await self._class_counts([year.id for year in years])

        responses = []
        for year in years:
            response = AcademicYearResponse.model_validate(year)
            response.class_count = counts.get(year.id, 0)
            responses.append(response)
        return responses

    async def get_year(self, year_id: int) -> AcademicYearResponse:
        year = await self._load_year(year_id)
        if not year:
            raise NotFoundError("Academic year not found")
        return await self._to_response(year)

    async def get_active_year(self) -> AcademicYearResponse:
        result = await self.db.execute(
            select(AcademicYear.id).where(AcademicYear.is_active.is_(True)).limit(1)
        )
        year_id = result.scalar_one_or_none()
        if year_id is None:
            raise NotFoundError("No active academic year found")
        return await self.get_year(year_id)

    async def create_year(self, data: AcademicYearCreate) -> AcademicYearResponse:
        await self._ensure_unique_name(data.name)

        async with self.transaction():
            if data.is_active:
                await self.db.execute(update(AcademicYear).values(is_active=False))
            year = AcademicYear(
                name=data.name,
                start_date=data.start_date,
                end_date=data.end_date,
                is_active=data.is_active,
                status=data.status,
                description=data.description,
            )
            self.db.add(year)

        logger.info(f"Created academic year {year.id} ({year.name})")
        return await self.get_year(year.id)

    async def update_year(self, year_id: int, data: AcademicYearUpdate) -> AcademicYearResponse:
        """
        Apply an update to an academic year.

        A body carrying ``isActive`` is an activation toggle: activating
        deactivates every other year, and the last active year cannot be
        deactivated. Any other body is a partial field update.
        """
        year = await self.db.get(AcademicYear, year_id)
        if not year:
            raise NotFoundError("Academic year not found")

        fields = data.model_dump(exclude_unset=True)

        if "is_active" in fields and fields["is_active"] is not None:
            async with self.transaction():
                if fields["is_active"]:
                    await self.db.execute(
                        update(AcademicYear)
                        .where(AcademicYear.id != year_id)
                        .values(is_active=False)
                    )
                    year.is_active = True
                elif year.is_active:
                    active_count = await self.db.scalar(
                        select(func.count(AcademicYear.id)).where(AcademicYear.is_active.is_(True))
                    )
                    if active_count <= 1:
                        raise ValidationError("At least one academic year must remain active")
                    year.is_active = False
            logger.info(f"Academic year {year_id} active={fields['is_active']}")
            return await self.get_year(year_id)

        fields.pop("is_active", None)
        if not fields:
            raise ValidationError("No valid fields to update")

        if "name" in fields and fields["name"] != year.name:
            await self._ensure_unique_name(fields["name"], exclude_id=year_id)

        start_date = fields.get("start_date", year.start_date)
        end_date = fields.get("end_date", year.end_date)
        if end_date <= start_date:
            raise ValidationError("End date must be after start date")

        async with self.transaction():
            for key, value in fields.items():
                setattr(year, key, value)

        return await self.get_year(year_id)

    async def delete_year(self, year_id: int) -> None:
        year = await self._load_year(year_id)
        if not year:
            raise NotFoundError("Academic year not found")

        if year.is_active:
            raise ValidationError("Cannot delete active academic year")

        class_count = await self.db.scalar(
            select(func.count(ClassRoom.id)).where(ClassRoom.academic_year_id == year_id)
        )
        if class_count:
            raise ValidationError("Cannot delete academic year with associated classes")

        semester_ids = [semester.id for semester in year.semesters]
        if semester_ids and await self._semesters_in_use(semester_ids):
            raise ValidationError(
                "Cannot delete academic year with semesters that have associated assignments or timetables"
            )

        async with self.transaction():
            await self.db.delete(year)
        logger.info(f"Deleted academic year {year_id}")

    async def _semesters_in_use(self, semester_ids: List[int]) -> bool:
        timetables = await self.db.scalar(
            select(func.count(Timetable.id)).where(Timetable.semester_id.in_(semester_ids))
        )
        assignments = await self.db.scalar(
            select(func.count(Assignment.id)).where(Assignment.semester_id.in_(semester_ids))
        )
        return bool(timetables or assignments)

    # Semesters

    async def list_semesters(self, academic_year_id: Optional[int] = None) -> List[Semester]:
        query = select(Semester).order_by(Semester.academic_year_id, Semester.semester_number)
        if academic_year_id is not None:
            query = query.where(Semester.academic_year_id == academic_year_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_semester(self, semester_id: int) -> Semester:
        semester = await self.db.get(Semester, semester_id)
        if not semester:
            raise NotFoundError("Semester not found")
        return semester

    async def _resolve_year_id(self, academic_year_id: Optional[int]) -> int:
        """Explicit year if it exists, otherwise the active one"""
        if academic_year_id is None:
            result = await self.db.execute(
                select(AcademicYear.id).where(AcademicYear.is_active.is_(True)).limit(1)
            )
            active_id = result.scalar_one_or_none()
            if active_id is None:
                raise ValidationError("No active academic year set")
            return active_id

        if not await self.db.get(AcademicYear, academic_year_id):
            raise ValidationError("Invalid academic year")
        return academic_year_id

    async def create_semester(self, data: SemesterCreate) -> Semester:
        year_id = await self._resolve_year_id(data.academic_year_id)
        if data.end_date <= data.start_date:
            raise ValidationError("End date must be after start date")

        async with self.transaction():
            if data.is_active:
                await self.db.execute(
                    update(Semester)
                    .where(Semester.academic_year_id == year_id)
                    .values(is_active=False)
                )
            semester = Semester(
                academic_year_id=year_id,
                name=data.name,
                name_ar=data.name_ar,
                semester_number=data.semester_number,
                start_date=data.start_date,
                end_date=data.end_date,
                is_active=data.is_active,
            )
            self.db.add(semester)

        logger.info(f"Created semester {semester.id} in academic year {year_id}")
        return semester

    async def update_semester(self, semester_id: int, data: SemesterUpdate) -> Semester:
        """Same contract as ``update_year``, with the single-active rule applied per year"""
        semester = await self.get_semester(semester_id)
        fields = data.model_dump(exclude_unset=True)

        if "is_active" in fields and fields["is_active"] is not None:
            async with self.transaction():
                if fields["is_active"]:
                    await self.db.execute(
                        update(Semester)
                        .where(Semester.academic_year_id == semester.academic_year_id)
                        .where(Semester.id != semester_id)
                        .values(is_active=False)
                    )
                    semester.is_active = True
                elif semester.is_active:
                    active_count = await self.db.scalar(
                        select(func.count(Semester.id))
                        .where(Semester.academic_year_id == semester.academic_year_id)
                        .where(Semester.is_active.is_(True))
                    )
                    if active_count <= 1:
                        raise ValidationError("At least one semester must remain active in the year")
                    semester.is_active = False
            logger.info(f"Semester {semester_id} active={fields['is_active']}")
            return await self._refresh(semester)

        fields.pop("is_active", None)
        if not fields:
            raise ValidationError("No valid fields to update")

        if "academic_year_id" in fields:
            fields["academic_year_id"] = await self._resolve_year_id(fields["academic_year_id"])

        start_date = fields.get("start_date", semester.start_date)
        end_date = fields.get("end_date", semester.end_date)
        if end_date <= start_date:
            raise ValidationError("End date must be after start date")

        async with self.transaction():
            for key, value in fields.items():
                setattr(semester, key, value)
        return await self._refresh(semester)

    async def delete_semester(self, semester_id: int) -> None:
        semester = await self.get_semester(semester_id)
        if semester.is_active:
            raise ValidationError("Cannot delete active semester")
        if await self._semesters_in_use([semester_id]):
            raise ValidationError("Cannot delete semester with associated assignments or timetables")

        async with self.transaction():
            await self.db.delete(semester)
        logger.info(f"Deleted semester {semester_id}")

    async def _refresh(self, semester: Semester) -> Semester:
        await self.db.refresh(semester)
        return semester
