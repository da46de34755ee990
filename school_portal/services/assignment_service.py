from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, PermissionDenied, ValidationError
from school_portal.core.logging import logger
from school_portal.models import (
    Assignment,
    AssignmentSubmission,
    ClassRoom,
    Semester,
    Student,
    Subject,
    Teacher,
    TeacherSubject,
)
from school_portal.schemas.coursework.requests import AssignmentCreate, SubmissionCreate, SubmissionGrade
from school_portal.schemas.coursework.responses import AssignmentStatusResponse
from school_portal.schemas.enums import SubmissionStatus, UserRoleEnum
from school_portal.services.base_service import BaseService
from school_portal.utils.dates import as_utc, utcnow

UPCOMING_LIMIT = 10


def assignment_load_options(student_id: Optional[int] = None) -> tuple:
    """Eager loads for assignment responses; submissions narrowed to one student when given"""
    submissions = Assignment.submissions
    if student_id is not None:
        submissions = Assignment.submissions.and_(AssignmentSubmission.student_id == student_id)
    return (
        selectinload(Assignment.subject),
        selectinload(Assignment.class_room).selectinload(ClassRoom.grade_level),
        selectinload(Assignment.teacher).selectinload(Teacher.user),
        selectinload(submissions),
    )


def submission_status(assignment: Assignment, submission: Optional[AssignmentSubmission]) -> SubmissionStatus:
    if submission:
        return SubmissionStatus.SUBMITTED
    if as_utc(assignment.due_date) < utcnow():
        return SubmissionStatus.LATE
    return SubmissionStatus.PENDING


class AssignmentService(BaseService):

    async def _teacher_for_user(self, user_id: int) -> Teacher:
        teacher = await self.db.scalar(select(Teacher).where(Teacher.user_id == user_id))
        if not teacher:
            raise NotFoundError("Teacher not found")
        return teacher

    async def list_assignments(
        self,
        role: str,
        user_id: int,
        class_room_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        teacher_id: Optional[int] = None
    ) -> List[Assignment]:
        """
        Assignments visible to the requester.

        STUDENT: active assignments of its classroom, with only its own submissions.
        TEACHER: assignments it created. ADMIN: everything, filterable.
        """
        query = select(Assignment).order_by(Assignment.due_date.desc())

        if role == UserRoleEnum.STUDENT:
            student = await self.db.scalar(select(Student).where(Student.user_id == user_id))
            if not student or not student.class_room_id:
                raise NotFoundError("Student not found or not assigned to class")
            query = (
                query.where(Assignment.class_room_id == student.class_room_id)
                .where(Assignment.is_active.is_(True))
                .options(*assignment_load_options(student.id))
            )
            if subject_id is not None:
                query = query.where(Assignment.subject_id == subject_id)

        elif role == UserRoleEnum.TEACHER:
            teacher = await self._teacher_for_user(user_id)
            query = query.where(Assignment.teacher_id == teacher.id).options(*assignment_load_options())
            if class_room_id is not None:
                query = query.where(Assignment.class_room_id == class_room_id)
            if subject_id is not None:
                query = query.where(Assignment.subject_id == subject_id)

        elif role == UserRoleEnum.ADMIN:
            query = query.options(*assignment_load_options())
            if class_room_id is not None:
                query = query.where(Assignment.class_room_id == class_room_id)
            if subject_id is not None:
                query = query.where(Assignment.subject_id == subject_id)
            if teacher_id is not None:
                query = query.where(Assignment.teacher_id == teacher_id)

        else:
            raise PermissionDenied("Unauthorized role")

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_assignments(self, role: str, user_id: int, data: AssignmentCreate) -> List[Assignment]:
        """One assignment per target classroom"""
        if role == UserRoleEnum.TEACHER:
            teacher = await self._teacher_for_user(user_id)
            teaches_subject = await self.db.scalar(
                select(TeacherSubject.id).where(
                    TeacherSubject.teacher_id == teacher.id,
                    TeacherSubject.subject_id == data.subject_id,
                )
            )
            if teaches_subject is None:
                raise PermissionDenied("You are not authorized to create assignments for this subject")
            teacher_id = teacher.id
        elif role == UserRoleEnum.ADMIN:
            if data.teacher_id is None:
                raise ValidationError("Teacher ID is required for admin")
            if not await self.db.get(Teacher, data.teacher_id):
                raise ValidationError("Invalid teacher")
            teacher_id = data.teacher_id
        else:
            raise PermissionDenied("Unauthorized")

        class_room_ids = list(dict.fromkeys(data.class_room_ids))
        if not class_room_ids:
            raise ValidationError("At least one classroom must be selected")

        if not await self.db.get(Subject, data.subject_id):
            raise ValidationError("Invalid subject")

        if data.semester_id is not None and not await self.db.get(Semester, data.semester_id):
            raise ValidationError("Invalid semester")

        found = set((await self.db.execute(
            select(ClassRoom.id).where(ClassRoom.id.in_(class_room_ids))
        )).scalars().all())
        if len(found) != len(class_room_ids):
            raise ValidationError("Invalid classroom")

        async with self.transaction():
            created = []
            for class_room_id in class_room_ids:
                assignment = Assignment(
                    title=data.title,
                    description=data.description,
                    instructions=data.instructions,
                    subject_id=data.subject_id,
                    teacher_id=teacher_id,
                    class_room_id=class_room_id,
                    semester_id=data.semester_id,
                    due_date=data.due_date,
                    total_marks=data.total_marks,
                    is_active=True,
                )
                self.db.add(assignment)
                created.append(assignment)

        ids = [assignment.id for assignment in created]
        logger.info(f"Teacher {teacher_id} created assignment(s) {ids}")

        result = await self.db.execute(
            select(Assignment)
            .where(Assignment.id.in_(ids))
            .options(*assignment_load_options())
            .execution_options(populate_existing=True)
            .order_by(Assignment.id)
        )
        return list(result.scalars().all())

    async def upcoming_for_student(self, student: Student) -> List[Assignment]:
        """Next active assignments due in the student's classroom"""
        if not student.class_room_id:
            return []
        result = await self.db.execute(
            select(Assignment)
            .where(
                Assignment.class_room_id == student.class_room_id,
                Assignment.is_active.is_(True),
                Assignment.due_date >= utcnow(),
            )
            .options(*assignment_load_options(student.id))
            .order_by(Assignment.due_date)
            .limit(UPCOMING_LIMIT)
        )
        return list(result.scalars().all())

    async def statuses_for_student(self, student: Student) -> List[AssignmentStatusResponse]:
        """Every active classroom assignment with the student's PENDING/SUBMITTED/LATE status"""
        if not student.class_room_id:
            return []
        result = await self.db.execute(
            select(Assignment)
            .where(
                Assignment.class_room_id == student.class_room_id,
                Assignment.is_active.is_(True),
            )
            .options(
                selectinload(Assignment.subject),
                selectinload(Assignment.submissions.and_(AssignmentSubmission.student_id == student.id)),
            )
            .order_by(Assignment.due_date)
        )

        statuses = []
        for assignment in result.scalars().all():
            submission = assignment.submissions[0] if assignment.submissions else None
            statuses.append(AssignmentStatusResponse(
                id=assignment.id,
                title=assignment.title,
                subject=assignment.subject.name if assignment.subject else "Unknown",
                due_date=assignment.due_date,
                status=submission_status(assignment, submission),
                marks=submission.marks_obtained if submission else None,
                total_marks=assignment.total_marks,
            ))
        return statuses

    # Submissions

    def _submission_query(self):
        return select(AssignmentSubmission).options(
            selectinload(AssignmentSubmission.student).selectinload(Student.user),
            selectinload(AssignmentSubmission.student)
            .selectinload(Student.class_room)
            .selectinload(ClassRoom.grade_level),
        )

    async def _get_submission(self, submission_id: int) -> AssignmentSubmission:
        result = await self.db.execute(
            self._submission_query()
            .where(AssignmentSubmission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _managed_assignment(self, role: str, user_id: int, assignment_id: int) -> Assignment:
        """The assignment when the requester may review its submissions"""
        assignment = await self.db.get(Assignment, assignment_id)
        if role == UserRoleEnum.TEACHER:
            teacher = await self._teacher_for_user(user_id)
            if not assignment or assignment.teacher_id != teacher.id:
                raise NotFoundError("Assignment not found or unauthorized")
        elif not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    async def list_submissions(self, role: str, user_id: int, assignment_id: int) -> List[AssignmentSubmission]:
        """
        Submissions of one assignment.

        STUDENT: only its own. TEACHER: all, for assignments it created.
        ADMIN: all.
        """
        query = self._submission_query().where(AssignmentSubmission.assignment_id == assignment_id)

        if role == UserRoleEnum.STUDENT:
            student = await self.db.scalar(select(Student).where(Student.user_id == user_id))
            if not student:
                raise NotFoundError("Student not found")
            query = query.where(AssignmentSubmission.student_id == student.id)
        elif role in (UserRoleEnum.TEACHER, UserRoleEnum.ADMIN):
            await self._managed_assignment(role, user_id, assignment_id)
        else:
            raise PermissionDenied("Unauthorized role")

        result = await self.db.execute(query.order_by(AssignmentSubmission.submitted_at.desc()))
        return list(result.scalars().all())

    async def submit(
        self,
        user_id: int,
        assignment_id: int,
        data: SubmissionCreate
    ) -> Tuple[AssignmentSubmission, bool]:
        """
        Hand in, or re-submit before the deadline.

        Returns the submission and whether it was newly created.
        """
        student = await self.db.scalar(select(Student).where(Student.user_id == user_id))
        if not student:
            raise NotFoundError("Student not found")

        assignment = await self.db.scalar(
            select(Assignment).where(
                Assignment.id == assignment_id,
                Assignment.class_room_id == student.class_room_id,
                Assignment.is_active.is_(True),
            )
        )
        if not assignment:
            raise NotFoundError("Assignment not found or not accessible")

        if as_utc(assignment.due_date) < utcnow():
            raise ValidationError("Assignment submission deadline has passed")

        submission = await self.db.scalar(
            select(AssignmentSubmission).where(
                AssignmentSubmission.assignment_id == assignment.id,
                AssignmentSubmission.student_id == student.id,
            )
        )
        created = submission is None

        async with self.transaction():
            if created:
                submission = AssignmentSubmission(assignment_id=assignment.id, student_id=student.id)
                self.db.add(submission)
            submission.content = data.content
            submission.submitted_at = utcnow()

        logger.info(
            f"Student {student.id} {'submitted' if created else 're-submitted'} assignment {assignment.id}"
        )
        return await self._get_submission(submission.id), created

    async def grade_submission(
        self,
        role: str,
        user_id: int,
        assignment_id: int,
        submission_id: int,
        data: SubmissionGrade
    ) -> AssignmentSubmission:
        assignment = await self._managed_assignment(role, user_id, assignment_id)

        submission = await self.db.scalar(
            select(AssignmentSubmission).where(
                AssignmentSubmission.id == submission_id,
                AssignmentSubmission.assignment_id == assignment.id,
            )
        )
        if not submission:
            raise NotFoundError("Submission not found")

        if data.marks_obtained > assignment.total_marks:
            raise ValidationError("Marks cannot exceed total marks")

        async with self.transaction():
            submission.marks_obtained = data.marks_obtained
            submission.feedback = data.feedback
            submission.graded_at = utcnow()
            submission.graded_by_id = user_id

        logger.info(f"User {user_id} graded submission {submission.id} of assignment {assignment.id}")
        return await self._get_submission(submission.id)
