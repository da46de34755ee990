from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import RoleChecker, require_admin, require_staff, require_teacher
from school_portal.schemas.academic import GradeLevelResponse, SubjectResponse
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.coursework import (
    AssignmentCreate,
    AssignmentCreateEnvelope,
    AssignmentListEnvelope,
    AssignmentResponse,
    AttendanceGradeLevelsEnvelope,
    AttendanceMarkEnvelope,
    AttendanceMarkRequest,
    GradeCreate,
    GradeEnvelope,
    SubjectAssignmentsEnvelope,
    SubmissionCreate,
    SubmissionDetailResponse,
    SubmissionEnvelope,
    SubmissionGrade,
    SubmissionListEnvelope,
)
from school_portal.schemas.enums import UserRoleEnum
from school_portal.schemas.people import TeacherResponse, TeacherSubjectLinks, TeacherSubjectsEnvelope
from school_portal.services import AssignmentService, AttendanceService, GradeService, TeacherService

router = APIRouter(tags=["Coursework"])

require_submitter = RoleChecker([UserRoleEnum.STUDENT], message="Only students can submit assignments")


def get_assignment_service(db: AsyncSession = Depends(get_db)) -> AssignmentService:
    return AssignmentService(db)


def get_attendance_service(db: AsyncSession = Depends(get_db)) -> AttendanceService:
    return AttendanceService(db)


def get_grade_service(db: AsyncSession = Depends(get_db)) -> GradeService:
    return GradeService(db)


def get_teacher_service(db: AsyncSession = Depends(get_db)) -> TeacherService:
    return TeacherService(db)


# Assignments

@router.get("/assignments", response_model=AssignmentListEnvelope)
async def list_assignments(
    class_room_id: Optional[int] = Query(None, alias="classRoomId"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    claims: TokenClaims = Depends(get_current_claims),
    service: AssignmentService = Depends(get_assignment_service)
) -> AssignmentListEnvelope:
    assignments = await service.list_assignments(
        claims.role, claims.user_id, class_room_id, subject_id, teacher_id
    )
    return AssignmentListEnvelope(
        assignments=[AssignmentResponse.model_validate(assignment) for assignment in assignments]
    )


@router.post("/assignments", response_model=AssignmentCreateEnvelope)
async def create_assignments(
    request: AssignmentCreate,
    claims: TokenClaims = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
) -> AssignmentCreateEnvelope:
    """Create the assignment once for every selected classroom"""
    assignments = await service.create_assignments(claims.role, claims.user_id, request)
    return AssignmentCreateEnvelope(
        message=f"{len(assignments)} assignment(s) created successfully",
        assignments=[AssignmentResponse.model_validate(assignment) for assignment in assignments],
    )


@router.get("/assignments/{assignment_id}/submissions", response_model=SubmissionListEnvelope)
async def list_submissions(
    assignment_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: AssignmentService = Depends(get_assignment_service)
) -> SubmissionListEnvelope:
    submissions = await service.list_submissions(claims.role, claims.user_id, assignment_id)
    return SubmissionListEnvelope(
        submissions=[SubmissionDetailResponse.model_validate(submission) for submission in submissions]
    )


@router.post(
    "/assignments/{assignment_id}/submissions",
    response_model=SubmissionEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    assignment_id: int,
    request: SubmissionCreate,
    response: Response,
    claims: TokenClaims = Depends(require_submitter),
    service: AssignmentService = Depends(get_assignment_service)
) -> SubmissionEnvelope:
    """Hand in an assignment; a second hand-in before the deadline replaces the first"""
    submission, created = await service.submit(claims.user_id, assignment_id, request)
    if created:
        message = "Assignment submitted successfully"
    else:
        response.status_code = status.HTTP_200_OK
        message = "Assignment submission updated successfully"
    return SubmissionEnvelope(message=message, submission=SubmissionDetailResponse.model_validate(submission))


@router.put(
    "/assignments/{assignment_id}/submissions/{submission_id}",
    response_model=SubmissionEnvelope,
)
async def grade_submission(
    assignment_id: int,
    submission_id: int,
    request: SubmissionGrade,
    claims: TokenClaims = Depends(require_staff),
    service: AssignmentService = Depends(get_assignment_service)
) -> SubmissionEnvelope:
    submission = await service.grade_submission(
        claims.role, claims.user_id, assignment_id, submission_id, request
    )
    return SubmissionEnvelope(
        message="Submission graded successfully",
        submission=SubmissionDetailResponse.model_validate(submission),
    )


# Teacher subjects

@router.get("/users/teachers/{user_id}/subjects", response_model=TeacherSubjectsEnvelope)
async def get_teacher_subjects(
    user_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: TeacherService = Depends(get_teacher_service)
) -> TeacherSubjectsEnvelope:
    teacher, subjects = await service.get_teacher_subjects(user_id)
    return TeacherSubjectsEnvelope(
        teacher=TeacherResponse.model_validate(teacher),
        subjects=[SubjectResponse.model_validate(subject) for subject in subjects],
    )


@router.put("/users/teachers/{user_id}/subjects", response_model=TeacherSubjectsEnvelope)
async def replace_teacher_subjects(
    user_id: int,
    request: TeacherSubjectLinks,
    claims: TokenClaims = Depends(require_admin),
    service: TeacherService = Depends(get_teacher_service)
) -> TeacherSubjectsEnvelope:
    """Replace every subject assigned to the teacher account ``user_id``"""
    teacher, subjects = await service.replace_teacher_subjects(user_id, request)
    return TeacherSubjectsEnvelope(
        teacher=TeacherResponse.model_validate(teacher),
        subjects=[SubjectResponse.model_validate(subject) for subject in subjects],
    )


@router.get("/teachers/subject-assignments", response_model=SubjectAssignmentsEnvelope)
async def get_subject_assignments(
    claims: TokenClaims = Depends(require_teacher),
    service: TeacherService = Depends(get_teacher_service)
) -> SubjectAssignmentsEnvelope:
    """The requesting teacher's subjects, each with its assignments, grade levels and classrooms"""
    return SubjectAssignmentsEnvelope(subjects=await service.subject_assignments(claims.user_id))


# Attendance

@router.get("/attendance", response_model=AttendanceGradeLevelsEnvelope)
async def list_attendance_grade_levels(
    claims: TokenClaims = Depends(get_current_claims),
    service: AttendanceService = Depends(get_attendance_service)
) -> AttendanceGradeLevelsEnvelope:
    grade_levels = await service.grade_levels_for(claims.role, claims.user_id)
    return AttendanceGradeLevelsEnvelope(
        grade_levels=[GradeLevelResponse.model_validate(grade_level) for grade_level in grade_levels]
    )


@router.post("/attendance", response_model=AttendanceMarkEnvelope)
async def mark_attendance(
    request: AttendanceMarkRequest,
    claims: TokenClaims = Depends(require_staff),
    service: AttendanceService = Depends(get_attendance_service)
) -> AttendanceMarkEnvelope:
    created, updated = await service.mark_attendance(claims.role, claims.user_id, request)
    return AttendanceMarkEnvelope(
        message="Attendance recorded successfully",
        records=len(request.records),
        created=created,
        updated=updated,
    )


# Grades

@router.post("/grades", response_model=GradeEnvelope, status_code=status.HTTP_201_CREATED)
async def record_grade(
    request: GradeCreate,
    claims: TokenClaims = Depends(require_staff),
    service: GradeService = Depends(get_grade_service)
) -> GradeEnvelope:
    return GradeEnvelope(grade=await service.record_grade(claims.role, claims.user_id, request))
