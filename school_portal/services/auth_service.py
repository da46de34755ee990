from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from school_portal.core.errors import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsException,
    NotFoundError,
    ValidationError,
)
from school_portal.core.logging import logger
from school_portal.core.security import (
    generate_token,
    get_password_hash,
    is_secure_password,
    verify_password,
)
from school_portal.models import ClassRoom, Parent, Student, StudentParent, Teacher, User
from school_portal.schemas.auth.requests import RegisterRequest
from school_portal.schemas.enums import UserRoleEnum
from school_portal.schemas.people.responses import (
    ChildResponse,
    LinkedParentResponse,
    ParentResponse,
    ProfileResponse,
    StudentResponse,
    TeacherResponse,
)
from school_portal.services.base_service import BaseService


class AuthService(BaseService):
    """Login, profile lookup and account registration"""

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Tuple[User, str]:
        """Check credentials and issue an access token"""
        user = await self.get_user_by_email(email)
        if not user:
            logger.warning("Login attempt failed: unknown email")
            raise InvalidCredentialsException()

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login attempt failed: invalid password for user {user.id}")
            raise InvalidCredentialsException()

        if not user.is_active:
            logger.warning(f"Login attempt failed: inactive account for user {user.id}")
            raise AuthenticationError("Account is inactive")

        token = generate_token(user.id, user.email, user.role)
        logger.info(f"User {user.id} logged in as {user.role.value}")
        return user, token

    async def get_profile(self, user_id: int) -> ProfileResponse:
        """User record plus the profile matching its role"""
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .options(
                selectinload(User.teacher_profile).selectinload(Teacher.user),
                selectinload(User.student_profile).selectinload(Student.user),
                selectinload(User.student_profile)
                .selectinload(Student.class_room)
                .selectinload(ClassRoom.grade_level),
                selectinload(User.student_profile)
                .selectinload(Student.parent_links)
                .selectinload(StudentParent.parent)
                .selectinload(Parent.user),
                selectinload(User.parent_profile)
                .selectinload(Parent.student_links)
                .selectinload(StudentParent.student)
                .selectinload(Student.user),
                selectinload(User.parent_profile)
                .selectinload(Parent.student_links)
                .selectinload(StudentParent.student)
                .selectinload(Student.class_room)
                .selectinload(ClassRoom.grade_level),
            )
        )
        user = result.scalar_one_or_none()

        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise AuthenticationError("Account is inactive")

        profile = ProfileResponse.model_validate(user)

        if user.teacher_profile:
            profile.teacher = TeacherResponse.model_validate(user.teacher_profile)

        if user.student_profile:
            student = user.student_profile
            profile.student = StudentResponse.model_validate(student)
            profile.parents = [
                LinkedParentResponse(
                    **ParentResponse.model_validate(link.parent).model_dump(),
                    relationship=link.relation,
                )
                for link in student.parent_links
            ]

        if user.parent_profile:
            parent = user.parent_profile
            profile.parent = ParentResponse(
                id=parent.id,
                user_id=parent.user_id,
                occupation=parent.occupation,
                address=parent.address,
            )
            profile.children = [
                ChildResponse(
                    **StudentResponse.model_validate(link.student).model_dump(),
                    relationship=link.relation,
                )
                for link in parent.student_links
            ]

        return profile

    async def register_user(self, data: RegisterRequest) -> User:
        """Create the user and its role profile in one transaction"""
        is_secure, error_message = is_secure_password(data.password)
        if not is_secure:
            raise ValidationError(error_message)

        if await self.get_user_by_email(data.email):
            raise ConflictError("Email already exists")

        if data.class_room_id is not None:
            class_room = await self.db.get(ClassRoom, data.class_room_id)
            if not class_room:
                raise ValidationError("Invalid classroom")

        async with self.transaction():
            user = User(
                email=data.email,
                password_hash=get_password_hash(data.password),
                name=data.name,
                name_ar=data.name_ar,
                role=UserRoleEnum(data.role),
                phone=data.phone,
                is_active=True,
            )
            self.db.add(user)
            await self.db.flush()

            if user.role == UserRoleEnum.TEACHER:
                self.db.add(Teacher(
                    user_id=user.id,
                    employee_id=data.employee_id,
                    specialization=data.specialization,
                    hire_date=data.hire_date,
                ))
            elif user.role == UserRoleEnum.STUDENT:
                self.db.add(Student(
                    user_id=user.id,
                    student_number=data.student_number,
                    class_room_id=data.class_room_id,
                    date_of_birth=data.date_of_birth,
                    gender=data.gender,
                ))
            elif user.role == UserRoleEnum.PARENT:
                self.db.add(Parent(
                    user_id=user.id,
                    occupation=data.occupation,
                    address=data.address,
                ))

        logger.info(f"Registered user {user.id} with role {user.role.value}")
        return user
