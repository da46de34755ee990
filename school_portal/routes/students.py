from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import require_student
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.coursework import (
    AssignmentListEnvelope,
    AssignmentResponse,
    AttendanceListEnvelope,
    GradeListEnvelope,
)
from school_portal.schemas.people import StudentListEnvelope, StudentResponse
from school_portal.services import (
    AssignmentService,
    AttendanceService,
    GradeService,
    StudentService,
)

router = APIRouter(tags=["Students"])


def get_student_service(db: AsyncSession = Depends(get_db)) -> StudentService:
    return StudentService(db)


def get_assignment_service(db: AsyncSession = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db)


def get_grade_service(db: AsyncSession = Depends(get_db)) -> GradeService:
    return GradeService(db)


def get_attendance_service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


@router.get("/students", response_model=StudentListEnvelope)
async def list_students(
    class_room_id: Optional[int] = Query(None, alias="classRoomId"),
    claims: TokenClaims = Depends(get_current_claims),
    service: StudentService = Depends(get_student_service)
) -> StudentListEnvelope:
    """Students visible to the requester, optionally limited to one classroom"""
    students = await service.list_students(claims.role, claims.user_id, class_room_id)
    return StudentListEnvelope(
        students=[StudentResponse.model_validate(student) for student in students],
        count=len(students),
    )


# The requesting student's own data

@router.get("/student/assignments", response_model=AssignmentListEnvelope)
async def get_my_assignments(
    claims: TokenClaims = Depends(require_student),
    student_service: StudentService = Depends(get_student_service),
    assignment_service: AssignmentService = Depends(get_assignment_service)
) -> AssignmentListEnvelope:
    student = await student_service.get_own_student(claims.user_id)
    assignments = await assignment_service.upcoming_for_student(student)
    return AssignmentListEnvelope(
        assignments=[AssignmentResponse.model_validate(assignment) for assignment in assignments]
    )


@router.get("/student/grades", response_model=GradeListEnvelope)
async def get_my_grades(
    claims: TokenClaims = Depends(require_student),
    student_service: StudentService = Depends(get_student_service),
    grade_service: GradeService = Depends(get_grade_service)
) -> GradeListEnvelope:
    student = await student_service.get_own_student(claims.user_id)
    return GradeListEnvelope(grades=await grade_service.grades_for_student(student.id))


@router.get("/student/attendance", response_model=AttendanceListEnvelope)
async def get_my_attendance(
    claims: TokenClaims = Depends(require_student),
    student_service: StudentService = Depends(get_student_service),
    attendance_service: AttendanceService = Depends(get_attendance_service)
) -> AttendanceListEnvelope:
    student = await student_service.get_own_student(claims.user_id)
    return AttendanceListEnvelope(attendance=await attendance_service.records_for_student(student.id))
