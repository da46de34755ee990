import os
from datetime import date, timedelta

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-signing-key-for-the-suite"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from school_portal import create_app
from school_portal.core.database import build_engine, build_session_factory, get_db, init_db
from school_portal.core.security import generate_token, get_password_hash
from school_portal.models import (
    AcademicYear,
    ClassRoom,
    GradeLevel,
    Parent,
    Semester,
    SpecialLocation,
    Student,
    StudentParent,
    Subject,
    Teacher,
    TeacherSubject,
    TimeSlot,
    Timetable,
    User,
)
from school_portal.schemas.enums import PlanningStatus, UserRoleEnum

DEFAULT_PASSWORD = "secret123"


@pytest_asyncio.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {generate_token(user.id, user.email, user.role)}"}


class Seed:
    """Persists fixture rows directly through the session"""

    def __init__(self, session):
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, *rows):
        self.session.add_all(rows)
        await self.session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def user(self, role: UserRoleEnum, email: str = None, name: str = None,
                   password: str = DEFAULT_PASSWORD, is_active: bool = True, class_room=None):
        """User plus the profile row of its role; returns ``(user, profile)``"""
        n = self._next()
        user = User(
            email=email or f"{role.value.lower()}{n}@school.org",
            password_hash=get_password_hash(password),
            name=name or f"{role.value.title()} {n}",
            role=role,
            is_active=is_active,
        )
        self.session.add(user)
        await self.session.flush()

        profile = None
        if role == UserRoleEnum.TEACHER:
            profile = Teacher(user_id=user.id, employee_id=f"EMP{n:03d}")
        elif role == UserRoleEnum.STUDENT:
            profile = Student(
                user_id=user.id,
                student_number=f"S{n:04d}",
                class_room_id=class_room.id if class_room else None,
            )
        elif role == UserRoleEnum.PARENT:
            profile = Parent(user_id=user.id)
        if profile is not None:
            self.session.add(profile)

        await self.session.commit()
        return user, profile

    async def academic_year(self, name: str = "2025-2026", is_active: bool = True):
        return await self._save(AcademicYear(
            name=name,
            start_date=date(2025, 9, 1),
            end_date=date(2026, 6, 30),
            is_active=is_active,
            status=PlanningStatus.ACTIVE,
        ))

    async def semester(self, year, number: int = 1, is_active: bool = True):
        return await self._save(Semester(
            academic_year_id=year.id,
            name=f"Semester {number}",
            semester_number=number,
            start_date=date(2025, 9, 1) + timedelta(days=150 * (number - 1)),
            end_date=date(2026, 1, 31) + timedelta(days=150 * (number - 1)),
            is_active=is_active,
        ))

    async def grade_level(self, level: int = 1):
        return await self._save(GradeLevel(
            name=f"Grade {level}",
            name_ar=f"الصف {level}",
            level=level,
            is_active=True,
        ))

    async def class_room(self, grade_level, year, section: str = "A", room_number: str = None,
                         class_teacher=None):
        return await self._save(ClassRoom(
            name=f"{grade_level.name} - {section}",
            name_ar=f"{grade_level.name_ar} - {section}",
            section=section,
            room_number=room_number or f"R{self._next()}",
            capacity=30,
            grade_level_id=grade_level.id,
            academic_year_id=year.id,
            class_teacher_id=class_teacher.id if class_teacher else None,
            is_active=True,
        ))

    async def subject(self, code: str = None, name: str = None, teacher=None):
        n = self._next()
        subject = await self._save(Subject(code=code or f"SUB{n}", name=name or f"Subject {n}", is_active=True))
        if teacher is not None:
            await self._save(TeacherSubject(teacher_id=teacher.id, subject_id=subject.id))
        return subject

    async def time_slot(self, order: int = 1, start: str = "08:00", end: str = "08:45"):
        return await self._save(TimeSlot(
            name=f"Period {order}",
            start_time=start,
            end_time=end,
            slot_order=order,
            is_break=False,
            is_active=True,
        ))

    async def special_location(self, name: str = "Science Lab"):
        return await self._save(SpecialLocation(name=name, type="LAB", is_active=True))

    async def lesson(self, class_room, subject, teacher, time_slot, semester, day_of_week: int = 0,
                     special_location=None):
        return await self._save(Timetable(
            class_room_id=class_room.id,
            subject_id=subject.id,
            teacher_id=teacher.id,
            time_slot_id=time_slot.id,
            semester_id=semester.id,
            special_location_id=special_location.id if special_location else None,
            day_of_week=day_of_week,
            is_active=True,
        ))

    async def link(self, parent, student, relation: str = "Father"):
        return await self._save(StudentParent(parent_id=parent.id, student_id=student.id, relation=relation))


@pytest_asyncio.fixture
async def seed(db_session):
    return Seed(db_session)


@pytest_asyncio.fixture
async def admin(seed):
    user, _ = await seed.user(UserRoleEnum.ADMIN, email="admin@school.org", name="Admin")
    return user


@pytest_asyncio.fixture
async def school(seed):
    """
    A small populated school: one active year and semester, a grade level with
    two classrooms, a teacher timetabled in class A, a student in each class
    and a parent linked to the class A student.
    """
    year = await seed.academic_year()
    semester = await seed.semester(year)
    grade = await seed.grade_level(1)
    class_a = await seed.class_room(grade, year, "A", "101")
    class_b = await seed.class_room(grade, year, "B", "102")

    teacher_user, teacher = await seed.user(UserRoleEnum.TEACHER)
    math = await seed.subject(code="MATH1", name="Mathematics", teacher=teacher)
    slot = await seed.time_slot(1)
    lab = await seed.special_location()
    lesson = await seed.lesson(class_a, math, teacher, slot, semester, day_of_week=0, special_location=lab)

    student_user, student = await seed.user(UserRoleEnum.STUDENT, class_room=class_a)
    other_user, other_student = await seed.user(UserRoleEnum.STUDENT, class_room=class_b)
    parent_user, parent = await seed.user(UserRoleEnum.PARENT)
    await seed.link(parent, student)

    return {
        "year": year,
        "semester": semester,
        "grade": grade,
        "class_a": class_a,
        "class_b": class_b,
        "teacher_user": teacher_user,
        "teacher": teacher,
        "math": math,
        "slot": slot,
        "lab": lab,
        "lesson": lesson,
        "student_user": student_user,
        "student": student,
        "other_user": other_user,
        "other_student": other_student,
        "parent_user": parent_user,
        "parent": parent,
    }
