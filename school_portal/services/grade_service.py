from typing import List

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import Grade, Student, Subject, Teacher, TeacherSubject
from school_portal.schemas.coursework.requests import GradeCreate
from school_portal.schemas.coursework.responses import GradeResponse, PerformanceEntry
from school_portal.schemas.enums import UserRoleEnum
from school_portal.services.base_service import BaseService

LETTER_SCALE = (
    (97, "A+"),
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)


def letter_grade(percentage: float) -> str:
    for threshold, letter in LETTER_SCALE:
        if percentage >= threshold:
            return letter
    return "F"


def percentage_of(marks: float, total_marks: float) -> float:
    if not total_marks:
        return 0
    return round(marks / total_marks * 100, 2)


def to_grade_response(grade: Grade) -> GradeResponse:
    response = GradeResponse.model_validate(grade)
    response.percentage = percentage_of(grade.marks, grade.total_marks)
    response.letter_grade = letter_grade(response.percentage)
    return response


class GradeService(BaseService):

    async def _grades_of(self, student_id: int) -> List[Grade]:
        result = await self.db.execute(
            select(Grade)
            .where(Grade.student_id == student_id)
            .options(selectinload(Grade.subject))
            .order_by(Grade.exam_date.desc(), Grade.id.desc())
        )
        return list(result.scalars().all())

    async def grades_for_student(self, student_id: int) -> List[GradeResponse]:
        return [to_grade_response(grade) for grade in await self._grades_of(student_id)]

    async def performance_for_student(self, student_id: int) -> List[PerformanceEntry]:
        """Grades flattened for the parent view"""
        performance = []
        for grade in await self._grades_of(student_id):
            percentage = percentage_of(grade.marks, grade.total_marks)
            performance.append(PerformanceEntry(
                subject=grade.subject.name if grade.subject else "Unknown",
                marks=grade.marks,
                total_marks=grade.total_marks,
                exam_type=grade.exam_type,
                date=grade.exam_date,
                percentage=percentage,
                grade=letter_grade(percentage),
            ))
        return performance

    async def record_grade(self, role: str, user_id: int, data: GradeCreate) -> GradeResponse:
        """Teachers may only grade subjects they are assigned to"""
        teacher_id = None
        if role == UserRoleEnum.TEACHER:
            teacher_id = await self.db.scalar(select(Teacher.id).where(Teacher.user_id == user_id))
            if teacher_id is None:
                raise PermissionDenied("Teacher access required")
            teaches_subject = await self.db.scalar(
                select(TeacherSubject.id).where(
                    TeacherSubject.teacher_id == teacher_id,
                    TeacherSubject.subject_id == data.subject_id,
                )
            )
            if teaches_subject is None:
                raise PermissionDenied("You are not authorized to grade this subject")

        if not await self.db.get(Student, data.student_id):
            raise ValidationError("Invalid student")
        if not await self.db.get(Subject, data.subject_id):
            raise ValidationError("Invalid subject")

        async with self.transaction():
            grade = Grade(
                student_id=data.student_id,
                subject_id=data.subject_id,
                teacher_id=teacher_id,
                marks=data.marks,
                total_marks=data.total_marks,
                exam_type=data.exam_type,
                exam_date=data.exam_date,
                remarks=data.remarks,
            )
            self.db.add(grade)

        logger.info(f"Recorded grade {grade.id} for student {grade.student_id}")
        result = await self.db.execute(
            select(Grade)
            .where(Grade.id == grade.id)
            .options(selectinload(Grade.subject))
            .execution_options(populate_existing=True)
        )
        return to_grade_response(result.scalar_one())
