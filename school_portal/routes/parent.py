from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.errors import ValidationError
from school_portal.core.permissions import require_admin, require_guardian, require_parent
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.coursework import (
    AssignmentStatusEnvelope,
    ParentAttendanceEnvelope,
    PerformanceEnvelope,
)
from school_portal.schemas.people import (
    ChildrenEnvelope,
    ParentResponse,
    ParentStudentLinks,
    ParentStudentsEnvelope,
)
from school_portal.services import (
    AssignmentService,
    AttendanceService,
    GradeService,
    StudentService,
)

router = APIRouter(tags=["Parents"])


def get_student_service(db: AsyncSession = Depends(get_db)) -> StudentService:
    return StudentService(db)


def get_assignment_service(db: AsyncSession = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db)


def get_grade_service(db: AsyncSession = Depends(get_db)) -> GradeService:
    return GradeService(db)


def get_attendance_service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


def _require_student_id(student_id: Optional[int]) -> int:
    if student_id is None:
        raise ValidationError("Student ID is required")
    return student_id


@router.get("/parent/children", response_model=ChildrenEnvelope)
async def get_children(
    claims: TokenClaims = Depends(require_parent),
    service: StudentService = Depends(get_student_service)
) -> ChildrenEnvelope:
    return ChildrenEnvelope(children=await service.get_children(claims.user_id))


@router.get("/parent/assignments", response_model=AssignmentStatusEnvelope)
async def get_child_assignments(
    student_id: Optional[int] = Query(None, alias="studentId"),
    claims: TokenClaims = Depends(require_guardian),
    student_service: StudentService = Depends(get_student_service),
    assignment_service: AssignmentService = Depends(get_assignment_service)
) -> AssignmentStatusEnvelope:
    """A child's assignments with PENDING/SUBMITTED/LATE status"""
    student = await student_service.get_accessible_student(
        claims.role, claims.user_id, _require_student_id(student_id)
    )
    return AssignmentStatusEnvelope(assignments=await assignment_service.statuses_for_student(student))


@router.get("/parent/grades", response_model=PerformanceEnvelope)
async def get_child_grades(
    student_id: Optional[int] = Query(None, alias="studentId"),
    claims: TokenClaims = Depends(require_guardian),
    student_service: StudentService = Depends(get_student_service),
    grade_service: GradeService = Depends(get_grade_service)
) -> PerformanceEnvelope:
    student = await student_service.get_accessible_student(
        claims.role, claims.user_id, _require_student_id(student_id)
    )
    return PerformanceEnvelope(performance=await grade_service.performance_for_student(student.id))


@router.get("/parent/attendance", response_model=ParentAttendanceEnvelope)
async def get_child_attendance(
    student_id: Optional[int] = Query(None, alias="studentId"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    claims: TokenClaims = Depends(require_parent),
    student_service: StudentService = Depends(get_student_service),
    attendance_service: AttendanceService = Depends(get_attendance_service)
) -> ParentAttendanceEnvelope:
    """A child's attendance records with summary statistics"""
    student = await student_service.get_accessible_student(
        claims.role, claims.user_id, _require_student_id(student_id)
    )
    records, statistics = await attendance_service.history_with_statistics(
        student.id, subject_id, start_date, end_date
    )
    return ParentAttendanceEnvelope(attendance=records, statistics=statistics)


# Parent link administration

@router.get("/users/parents/{user_id}/students", response_model=ParentStudentsEnvelope)
async def get_parent_students(
    user_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: StudentService = Depends(get_student_service)
) -> ParentStudentsEnvelope:
    parent, students = await service.get_parent_students(user_id)
    return ParentStudentsEnvelope(parent=ParentResponse.model_validate(parent), students=students)


@router.patch("/users/parents/{user_id}/students", response_model=ParentStudentsEnvelope)
async def replace_parent_students(
    user_id: int,
    request: ParentStudentLinks,
    claims: TokenClaims = Depends(require_admin),
    service: StudentService = Depends(get_student_service)
) -> ParentStudentsEnvelope:
    """Replace every child linked to the parent account ``user_id``"""
    parent, students = await service.replace_parent_students(user_id, request)
    return ParentStudentsEnvelope(parent=ParentResponse.model_validate(parent), students=students)
