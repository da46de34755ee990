from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import NotFoundError
from school_portal.core.logging import logger
from school_portal.core.permissions import scope_to_students
from school_portal.models import ClassRoom, Parent, Student, StudentParent, User
from school_portal.schemas.enums import UserRoleEnum
from school_portal.schemas.people.requests import ParentStudentLinks
from school_portal.schemas.people.responses import ChildResponse, StudentResponse
from school_portal.services.base_service import BaseService

STUDENT_LOAD_OPTIONS = (
    selectinload(Student.user),
    selectinload(Student.class_room).selectinload(ClassRoom.grade_level),
)


class StudentService(BaseService):
    """Student records and the parent/child links that scope them"""

    async def list_students(
        self,
        role: str,
        user_id: int,
        class_room_id: Optional[int] = None
    ) -> List[Student]:
        query = (
            select(Student)
            .join(User, Student.user_id == User.id)
            .options(*STUDENT_LOAD_OPTIONS)
            .order_by(Student.student_number, User.name)
        )
        if class_room_id is not None:
            query = query.where(Student.class_room_id == class_room_id)
        query = scope_to_students(query, Student.id, role, user_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_own_student(self, user_id: int) -> Student:
        result = await self.db.execute(
            select(Student).where(Student.user_id == user_id).options(*STUDENT_LOAD_OPTIONS)
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student not found")
        return student

    async def get_parent_by_user(self, user_id: int) -> Parent:
        parent = await self.db.scalar(select(Parent).where(Parent.user_id == user_id))
        if not parent:
            raise NotFoundError("Parent not found")
        return parent

    async def _links_for(self, parent_id: int) -> List[StudentParent]:
        result = await self.db.execute(
            select(StudentParent)
            .where(StudentParent.parent_id == parent_id)
            .options(
                selectinload(StudentParent.student).selectinload(Student.user),
                selectinload(StudentParent.student)
                .selectinload(Student.class_room)
                .selectinload(ClassRoom.grade_level),
            )
            .order_by(StudentParent.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _as_children(links: List[StudentParent]) -> List[ChildResponse]:
        return [
            ChildResponse(
                **StudentResponse.model_validate(link.student).model_dump(),
                relationship=link.relation,
            )
            for link in links
        ]

    async def get_children(self, user_id: int) -> List[ChildResponse]:
        parent = await self.get_parent_by_user(user_id)
        return self._as_children(await self._links_for(parent.id))

    async def get_accessible_student(self, role: str, user_id: int, student_id: int) -> Student:
        """
        Load a student on behalf of a parent or admin.

        Parents only reach their own children; any other student is reported
        as not found so its existence is not disclosed.
        """
        query = select(Student).where(Student.id == student_id).options(*STUDENT_LOAD_OPTIONS)
        if role != UserRoleEnum.ADMIN:
            query = scope_to_students(query, Student.id, role, user_id)

        student = (await self.db.execute(query)).scalar_one_or_none()
        if not student:
            raise NotFoundError("Student not found or access denied")
        return student

    # Parent links, managed by admins

    async def get_parent_students(self, parent_user_id: int) -> Tuple[Parent, List[ChildResponse]]:
        result = await self.db.execute(
            select(Parent)
            .where(Parent.user_id == parent_user_id)
            .options(selectinload(Parent.user))
            .execution_options(populate_existing=True)
        )
        parent = result.scalar_one_or_none()
        if not parent:
            raise NotFoundError("Parent not found")
        return parent, self._as_children(await self._links_for(parent.id))

    async def replace_parent_students(
        self,
        parent_user_id: int,
        data: ParentStudentLinks
    ) -> Tuple[Parent, List[ChildResponse]]:
        """Swap a parent's links for ``data.student_ids`` atomically"""
        parent = await self.get_parent_by_user(parent_user_id)

        student_ids = list(dict.fromkeys(data.student_ids))
        if student_ids:
            found = set((await self.db.execute(
                select(Student.id).where(Student.id.in_(student_ids))
            )).scalars().all())
            missing = [student_id for student_id in student_ids if student_id not in found]
            if missing:
                raise NotFoundError(f"Student not found: {missing[0]}")

        async with self.transaction():
            await self.db.execute(delete(StudentParent).where(StudentParent.parent_id == parent.id))
            for student_id in student_ids:
                self.db.add(StudentParent(
                    student_id=student_id,
                    parent_id=parent.id,
                    relation=data.relationship or "Parent",
                ))

        logger.info(f"Parent {parent.id} now linked to {len(student_ids)} student(s)")
        return await self.get_parent_students(parent_user_id)
