from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import require_staff
from school_portal.schemas.academic import MessageEnvelope
from school_portal.schemas.auth import TokenClaims
from school_portal.schemas.coursework import (
    ExamCreate,
    ExamEnvelope,
    ExamListEnvelope,
    ExamResultResponse,
    ExamResultsEnvelope,
    ExamResultsRequest,
    ExamResultsSavedEnvelope,
    ExamUpdate,
)
from school_portal.services import ExamService

router = APIRouter(tags=["Exams"])


def get_exam_service(db: AsyncSession = Depends(get_db)) -> ExamService:
    return ExamService(db)


@router.get("/exams", response_model=ExamListEnvelope)
async def list_exams(
    class_room_id: Optional[int] = Query(None, alias="classRoomId"),
    subject_id: Optional[int] = Query(None, alias="subjectId"),
    teacher_id: Optional[int] = Query(None, alias="teacherId"),
    claims: TokenClaims = Depends(get_current_claims),
    service: ExamService = Depends(get_exam_service)
) -> ExamListEnvelope:
    exams = await service.list_exams(claims.role, claims.user_id, class_room_id, subject_id, teacher_id)
    return ExamListEnvelope(exams=exams)


@router.post("/exams", response_model=ExamEnvelope, status_code=status.HTTP_201_CREATED)
async def create_exam(
    request: ExamCreate,
    claims: TokenClaims = Depends(require_staff),
    service: ExamService = Depends(get_exam_service)
) -> ExamEnvelope:
    exam = await service.create_exam(claims.role, claims.user_id, request)
    return ExamEnvelope(message="Exam created successfully", exam=exam)


@router.get("/exams/{exam_id}", response_model=ExamEnvelope)
async def get_exam(
    exam_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: ExamService = Depends(get_exam_service)
) -> ExamEnvelope:
    return ExamEnvelope(exam=await service.get_exam(claims.role, claims.user_id, exam_id))


@router.put("/exams/{exam_id}", response_model=ExamEnvelope)
async def update_exam(
    exam_id: int,
    request: ExamUpdate,
    claims: TokenClaims = Depends(require_staff),
    service: ExamService = Depends(get_exam_service)
) -> ExamEnvelope:
    exam = await service.update_exam(claims.role, claims.user_id, exam_id, request)
    return ExamEnvelope(message="Exam updated successfully", exam=exam)


@router.delete("/exams/{exam_id}", response_model=MessageEnvelope)
async def delete_exam(
    exam_id: int,
    claims: TokenClaims = Depends(require_staff),
    service: ExamService = Depends(get_exam_service)
) -> MessageEnvelope:
    await service.delete_exam(claims.role, claims.user_id, exam_id)
    return MessageEnvelope(message="Exam deleted successfully")


# Results

@router.get("/exams/{exam_id}/results", response_model=ExamResultsEnvelope)
async def get_exam_results(
    exam_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: ExamService = Depends(get_exam_service)
) -> ExamResultsEnvelope:
    """Students get their own row only; staff also get class statistics"""
    exam, results, statistics = await service.get_results(claims.role, claims.user_id, exam_id)
    return ExamResultsEnvelope(
        exam=exam,
        results=[ExamResultResponse.model_validate(result) for result in results],
        statistics=statistics,
    )


@router.post("/exams/{exam_id}/results", response_model=ExamResultsSavedEnvelope)
async def save_exam_results(
    exam_id: int,
    request: ExamResultsRequest,
    claims: TokenClaims = Depends(require_staff),
    service: ExamService = Depends(get_exam_service)
) -> ExamResultsSavedEnvelope:
    results = await service.save_results(claims.role, claims.user_id, exam_id, request)
    return ExamResultsSavedEnvelope(
        message="Results saved successfully",
        results=[ExamResultResponse.model_validate(result) for result in results],
    )
