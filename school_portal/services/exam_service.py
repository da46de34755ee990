from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import (
    ClassRoom,
    Exam,
    ExamResult,
    Semester,
    Student,
    Subject,
    Teacher,
    TeacherSubject,
)
from school_portal.schemas.coursework.requests import ExamCreate, ExamResultsRequest, ExamUpdate
from school_portal.schemas.coursework.responses import (
    ExamDetailResponse,
    ExamResponse,
    ExamStatistics,
)
from school_portal.schemas.enums import UserRoleEnum
from school_portal.services.base_service import BaseService
from school_portal.services.grade_service import LETTER_SCALE, letter_grade, percentage_of

PASS_PERCENTAGE = 50


def exam_load_options() -> tuple:
    return (
        selectinload(Exam.subject),
        selectinload(Exam.class_room).selectinload(ClassRoom.grade_level),
        selectinload(Exam.teacher).selectinload(Teacher.user),
    )


def result_load_options() -> tuple:
    return (
        selectinload(ExamResult.student).selectinload(Student.user),
        selectinload(ExamResult.student).selectinload(Student.class_room).selectinload(ClassRoom.grade_level),
    )


def exam_statistics(results: List[ExamResult], total_marks: float) -> Optional[ExamStatistics]:
    """Class summary of one exam; ``None`` until a result is recorded"""
    if not results:
        return None

    marks = [result.marks_obtained for result in results]
    average = sum(marks) / len(marks)
    passed = sum(1 for m in marks if percentage_of(m, total_marks) >= PASS_PERCENTAGE)

    distribution = {letter: 0 for _, letter in LETTER_SCALE}
    distribution.setdefault("F", 0)
    for result in results:
        distribution[result.grade] = distribution.get(result.grade, 0) + 1

    return ExamStatistics(
        total_students=len(results),
        average_marks=round(average, 2),
        average_percentage=percentage_of(average, total_marks),
        highest_marks=max(marks),
        lowest_marks=min(marks),
        passed_students=passed,
        failed_students=len(results) - passed,
        grade_distribution=distribution,
    )


class ExamService(BaseService):

    async def _teacher_for_user(self, user_id: int) -> Teacher:
        teacher = await self.db.scalar(select(Teacher).where(Teacher.user_id == user_id))
        if not teacher:
            raise NotFoundError("Teacher not found")
        return teacher

    async def _student_for_user(self, user_id: int) -> Student:
        student = await self.db.scalar(select(Student).where(Student.user_id == user_id))
        if not student or not student.class_room_id:
            raise NotFoundError("Student not found or not assigned to class")
        return student

    async def _result_counts(self, exam_ids: List[int], student_id: Optional[int] = None) -> Dict[int, int]:
        if not exam_ids:
            return {}
        query = (
            select(ExamResult.exam_id, func.count(ExamResult.id))
            .where(ExamResult.exam_id.in_(exam_ids))
            .group_by(ExamResult.exam_id)
        )
        if student_id is not None:
            query = query.where(ExamResult.student_id == student_id)
        return dict((await self.db.execute(query)).all())

    async def list_exams(
        self,
        role: str,
        user_id: int,
        class_room_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        teacher_id: Optional[int] = None
    ) -> List[ExamResponse]:
        """
        Exams visible to the requester, newest first.

        STUDENT: active exams of its classroom, counting only its own results.
        TEACHER: exams it created. ADMIN: everything, filterable.
        """
        query = select(Exam).options(*exam_load_options()).order_by(Exam.exam_date.desc())
        counted_student = None

        if role == UserRoleEnum.STUDENT:
            student = await self._student_for_user(user_id)
            counted_student = student.id
            query = query.where(
                Exam.class_room_id == student.class_room_id,
                Exam.is_active.is_(True),
            )
        elif role in (UserRoleEnum.TEACHER, UserRoleEnum.ADMIN):
            if role == UserRoleEnum.TEACHER:
                teacher = await self._teacher_for_user(user_id)
                query = query.where(Exam.teacher_id == teacher.id)
            elif teacher_id is not None:
                query = query.where(Exam.teacher_id == teacher_id)
            if class_room_id is not None:
                query = query.where(Exam.class_room_id == class_room_id)
            if subject_id is not None:
                query = query.where(Exam.subject_id == subject_id)
        else:
            raise PermissionDenied("Unauthorized role")

        exams = list((await self.db.execute(query)).scalars().all())
        counts = await self._result_counts([exam.id for exam in exams], counted_student)

        responses = []
        for exam in exams:
            response = ExamResponse.model_validate(exam)
            response.result_count = counts.get(exam.id, 0)
            responses.append(response)
        return responses

    async def create_exam(self, role: str, user_id: int, data: ExamCreate) -> ExamDetailResponse:
        if role == UserRoleEnum.TEACHER:
            teacher = await self._teacher_for_user(user_id)
            teaches_subject = await self.db.scalar(
                select(TeacherSubject.id).where(
                    TeacherSubject.teacher_id == teacher.id,
                    TeacherSubject.subject_id == data.subject_id,
                )
            )
            if teaches_subject is None:
                raise PermissionDenied("You are not authorized to create exams for this subject")
            teacher_id = teacher.id
        elif role == UserRoleEnum.ADMIN:
            if data.teacher_id is None:
                raise ValidationError("Teacher ID is required for admin")
            if not await self.db.get(Teacher, data.teacher_id):
                raise ValidationError("Invalid teacher")
            teacher_id = data.teacher_id
        else:
            raise PermissionDenied("Unauthorized")

        if not await self.db.get(Subject, data.subject_id):
            raise ValidationError("Invalid subject")
        if not await self.db.get(ClassRoom, data.class_room_id):
            raise ValidationError("Invalid classroom")
        if data.semester_id is not None and not await self.db.get(Semester, data.semester_id):
            raise ValidationError("Invalid semester")

        async with self.transaction():
            exam = Exam(
                title=data.title,
                description=data.description,
                instructions=data.instructions,
                subject_id=data.subject_id,
                teacher_id=teacher_id,
                class_room_id=data.class_room_id,
                semester_id=data.semester_id,
                exam_date=data.exam_date,
                duration=data.duration,
                total_marks=data.total_marks,
                is_active=True,
            )
            self.db.add(exam)

        logger.info(f"Teacher {teacher_id} created exam {exam.id} for classroom {exam.class_room_id}")
        return await self.get_exam(role, user_id, exam.id)

    async def _load_exam(self, exam_id: int, student_id: Optional[int] = None) -> Exam:
        results = Exam.results
        if student_id is not None:
            results = Exam.results.and_(ExamResult.student_id == student_id)
        result = await self.db.execute(
            select(Exam)
            .where(Exam.id == exam_id)
            .options(*exam_load_options(), selectinload(results).options(*result_load_options()))
            .execution_options(populate_existing=True)
        )
        exam = result.scalar_one_or_none()
        if not exam:
            raise NotFoundError("Exam not found")
        return exam

    async def _check_access(self, role: str, user_id: int, exam: Exam) -> Optional[int]:
        """
        Raise unless the requester may see ``exam``.

        Returns the student id results must be narrowed to, if any.
        """
        if role == UserRoleEnum.STUDENT:
            student = await self._student_for_user(user_id)
            if exam.class_room_id != student.class_room_id:
                raise PermissionDenied("Unauthorized")
            return student.id
        if role == UserRoleEnum.TEACHER:
            teacher = await self._teacher_for_user(user_id)
            if exam.teacher_id != teacher.id:
                raise PermissionDenied("Unauthorized")
            return None
        if role == UserRoleEnum.ADMIN:
            return None
        raise PermissionDenied("Unauthorized role")

    async def get_exam(self, role: str, user_id: int, exam_id: int) -> ExamDetailResponse:
        exam = await self._load_exam(exam_id)
        student_id = await self._check_access(role, user_id, exam)
        if student_id is not None:
            exam = await self._load_exam(exam_id, student_id)

        response = ExamDetailResponse.model_validate(exam)
        response.results.sort(key=lambda r: (r.student.student_number or "") if r.student else "")
        response.result_count = len(response.results)
        return response

    async def update_exam(self, role: str, user_id: int, exam_id: int, data: ExamUpdate) -> ExamDetailResponse:
        exam = await self._load_exam(exam_id)
        await self._check_access(role, user_id, exam)

        fields = data.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid fields to update")

        if fields.get("total_marks") is not None:
            highest = await self.db.scalar(
                select(func.max(ExamResult.marks_obtained)).where(ExamResult.exam_id == exam_id)
            )
            if highest is not None and highest > fields["total_marks"]:
                raise ValidationError("Total marks cannot be below a recorded result")

        async with self.transaction():
            for key, value in fields.items():
                if value is not None or key in ("description", "instructions"):
                    setattr(exam, key, value)

        logger.info(f"Updated exam {exam_id}: {sorted(fields)}")
        return await self.get_exam(role, user_id, exam_id)

    async def delete_exam(self, role: str, user_id: int, exam_id: int) -> None:
        exam = await self._load_exam(exam_id)
        await self._check_access(role, user_id, exam)

        async with self.transaction():
            await self.db.delete(exam)
        logger.info(f"Deleted exam {exam_id}")

    async def save_results(
        self,
        role: str,
        user_id: int,
        exam_id: int,
        data: ExamResultsRequest
    ) -> List[ExamResult]:
        """
        Record or overwrite marks for each listed student.

        Every entry is checked before anything is written.
        """
        exam = await self._load_exam(exam_id)
        await self._check_access(role, user_id, exam)

        entries = {entry.student_id: entry for entry in data.results}
        for entry in entries.values():
            if entry.marks_obtained < 0 or entry.marks_obtained > exam.total_marks:
                raise ValidationError(
                    f"Invalid marks for student {entry.student_id}. "
                    f"Must be between 0 and {exam.total_marks:g}"
                )

        if entries:
            enrolled = set((await self.db.execute(
                select(Student.id).where(
                    Student.id.in_(list(entries)),
                    Student.class_room_id == exam.class_room_id,
                )
            )).scalars().all())
            for student_id in entries:
                if student_id not in enrolled:
                    raise ValidationError(f"Student {student_id} is not in this classroom")

        existing = {
            result.student_id: result
            for result in (await self.db.execute(
                select(ExamResult).where(ExamResult.exam_id == exam_id)
            )).scalars().all()
        }

        async with self.transaction():
            for student_id, entry in entries.items():
                result = existing.get(student_id)
                if result is None:
                    result = ExamResult(exam_id=exam_id, student_id=student_id)
                    self.db.add(result)
                result.marks_obtained = entry.marks_obtained
                result.grade = letter_grade(percentage_of(entry.marks_obtained, exam.total_marks))
                result.remarks = entry.remarks

        logger.info(f"Saved {len(entries)} result(s) for exam {exam_id}")

        saved = await self.db.execute(
            select(ExamResult)
            .where(ExamResult.exam_id == exam_id, ExamResult.student_id.in_(list(entries)))
            .options(*result_load_options())
            .execution_options(populate_existing=True)
            .order_by(ExamResult.student_id)
        )
        return list(saved.scalars().all())

    async def get_results(
        self,
        role: str,
        user_id: int,
        exam_id: int
    ) -> Tuple[ExamResponse, List[ExamResult], Optional[ExamStatistics]]:
        """Results of one exam; students see only their own, staff also get statistics"""
        exam = await self._load_exam(exam_id)
        student_id = await self._check_access(role, user_id, exam)

        query = (
            select(ExamResult)
            .join(Student, ExamResult.student_id == Student.id)
            .where(ExamResult.exam_id == exam_id)
            .options(*result_load_options())
            .order_by(Student.student_number)
        )
        if student_id is not None:
            query = query.where(ExamResult.student_id == student_id)
        results = list((await self.db.execute(query)).scalars().all())

        statistics = None if student_id is not None else exam_statistics(results, exam.total_marks)

        response = ExamResponse.model_validate(exam)
        response.result_count = len(results)
        return response, results, statistics
