from typing import Dict, List, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError, ValidationError
from school_portal.core.logging import logger
from school_portal.models import Assignment, Subject, Teacher, TeacherSubject
from school_portal.schemas.academic.responses import ClassRoomBrief, GradeLevelResponse, SubjectResponse
from school_portal.schemas.coursework.responses import AssignmentResponse, SubjectAssignmentGroup
from school_portal.schemas.people.requests import TeacherSubjectLinks
from school_portal.services.assignment_service import assignment_load_options
from school_portal.services.base_service import BaseService


class TeacherService(BaseService):
    """Teacher-to-subject assignment and the per-subject coursework overview"""

    async def get_teacher_by_user(self, user_id: int) -> Teacher:
        result = await self.db.execute(
            select(Teacher)
            .where(Teacher.user_id == user_id)
            .options(selectinload(Teacher.user))
            .execution_options(populate_existing=True)
        )
        teacher = result.scalar_one_or_none()
        if not teacher:
            raise NotFoundError("Teacher not found")
        return teacher

    async def _subjects_of(self, teacher_id: int) -> List[Subject]:
        result = await self.db.execute(
            select(Subject)
            .join(TeacherSubject, TeacherSubject.subject_id == Subject.id)
            .where(TeacherSubject.teacher_id == teacher_id)
            .order_by(Subject.name)
        )
        return list(result.scalars().all())

    async def get_teacher_subjects(self, user_id: int) -> Tuple[Teacher, List[Subject]]:
        teacher = await self.get_teacher_by_user(user_id)
        return teacher, await self._subjects_of(teacher.id)

    async def replace_teacher_subjects(
        self,
        user_id: int,
        data: TeacherSubjectLinks
    ) -> Tuple[Teacher, List[Subject]]:
        """Swap the teacher's subjects for ``data.subject_ids`` atomically"""
        teacher = await self.get_teacher_by_user(user_id)

        subject_ids = list(dict.fromkeys(data.subject_ids))
        if subject_ids:
            found = set((await self.db.execute(
                select(Subject.id).where(Subject.id.in_(subject_ids))
            )).scalars().all())
            if len(found) != len(subject_ids):
                raise ValidationError("One or more subjects not found")

        async with self.transaction():
            await self.db.execute(delete(TeacherSubject).where(TeacherSubject.teacher_id == teacher.id))
            for subject_id in subject_ids:
                self.db.add(TeacherSubject(teacher_id=teacher.id, subject_id=subject_id))

        logger.info(f"Teacher {teacher.id} now assigned to {len(subject_ids)} subject(s)")
        return await self.get_teacher_subjects(user_id)

    async def subject_assignments(self, user_id: int) -> List[SubjectAssignmentGroup]:
        """
        Every subject the teacher is assigned to, with the teacher's assignments
        in it and the distinct grade levels and classrooms those reach.
        """
        teacher = await self.get_teacher_by_user(user_id)
        subjects = await self._subjects_of(teacher.id)

        result = await self.db.execute(
            select(Assignment)
            .where(Assignment.teacher_id == teacher.id)
            .options(*assignment_load_options())
            .order_by(Assignment.due_date.desc(), Assignment.created_at.desc())
        )

        by_subject: Dict[int, List[Assignment]] = {subject.id: [] for subject in subjects}
        for assignment in result.scalars().all():
            if assignment.subject_id in by_subject:
                by_subject[assignment.subject_id].append(assignment)

        groups = []
        for subject in subjects:
            assignments = by_subject[subject.id]
            class_rooms = {a.class_room.id: a.class_room for a in assignments if a.class_room}
            grade_levels = {c.grade_level.id: c.grade_level for c in class_rooms.values() if c.grade_level}
            groups.append(SubjectAssignmentGroup(
                subject=SubjectResponse.model_validate(subject),
                grades=[
                    GradeLevelResponse.model_validate(g)
                    for g in sorted(grade_levels.values(), key=lambda g: g.level)
                ],
                classrooms=[
                    ClassRoomBrief.model_validate(c)
                    for c in sorted(class_rooms.values(), key=lambda c: c.name)
                ],
                assignments=[AssignmentResponse.model_validate(a) for a in assignments],
            ))
        return groups
