from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import require_admin
from school_portal.schemas.academic import (
    AcademicYearCreate,
    AcademicYearEnvelope,
    AcademicYearListEnvelope,
    AcademicYearUpdate,
    ClassRoomCreate,
    ClassRoomEnvelope,
    ClassRoomListEnvelope,
    ClassRoomUpdate,
    GradeLevelCreate,
    GradeLevelEnvelope,
    GradeLevelListEnvelope,
    GradeLevelResponse,
    GradeLevelUpdate,
    MessageEnvelope,
    SemesterCreate,
    SemesterEnvelope,
    SemesterListEnvelope,
    SemesterResponse,
    SemesterUpdate,
    SpecialLocationCreate,
    SpecialLocationEnvelope,
    SpecialLocationListEnvelope,
    SpecialLocationResponse,
    SpecialLocationUpdate,
    SubjectCreate,
    SubjectEnvelope,
    SubjectListEnvelope,
    SubjectResponse,
    SubjectUpdate,
)
from school_portal.schemas.auth import TokenClaims
from school_portal.services import (
    AcademicYearService,
    CatalogService,
    ClassService,
    GradeLevelService,
)
from school_portal.utils.cookie_utils import (
    set_active_academic_year_cookie,
    set_active_semester_cookie,
)

router = APIRouter(tags=["Academic"])


# Service dependencies
def get_academic_year_service(db: AsyncSession = Depends(get_db)) -> AcademicYearService:
    return AcademicYearService(db)


def get_grade_level_service(db: AsyncSession = Depends(get_db)) -> GradeLevelService:
    return GradeLevelService(db)


def get_class_service(db: AsyncSession = Depends(get_db)) -> ClassService:
    return ClassService(db)


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


# Academic years

@router.get("/academic-years", response_model=AcademicYearListEnvelope)
async def list_academic_years(
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> AcademicYearListEnvelope:
    return AcademicYearListEnvelope(data=await service.list_years())


@router.post("/academic-years", response_model=AcademicYearEnvelope, status_code=status.HTTP_201_CREATED)
async def create_academic_year(
    request: AcademicYearCreate,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> AcademicYearEnvelope:
    return AcademicYearEnvelope(data=await service.create_year(request))


@router.get("/academic-years/active", response_model=AcademicYearEnvelope)
async def get_active_academic_year(
    claims: TokenClaims = Depends(get_current_claims),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> AcademicYearEnvelope:
    return AcademicYearEnvelope(data=await service.get_active_year())


@router.get("/academic-years/{year_id}", response_model=AcademicYearEnvelope)
async def get_academic_year(
    year_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> AcademicYearEnvelope:
    return AcademicYearEnvelope(data=await service.get_year(year_id))


@router.put("/academic-years/{year_id}", response_model=AcademicYearEnvelope)
async def update_academic_year(
    year_id: int,
    request: AcademicYearUpdate,
    response: Response,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> AcademicYearEnvelope:
    """Partial update, or an activation toggle when the body carries ``isActive``"""
    year = await service.update_year(year_id, request)
    if request.is_active:
        set_active_academic_year_cookie(response, year.id)
    return AcademicYearEnvelope(data=year)


@router.delete("/academic-years/{year_id}", response_model=MessageEnvelope)
async def delete_academic_year(
    year_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> MessageEnvelope:
    await service.delete_year(year_id)
    return MessageEnvelope(message="Academic year deleted successfully")


# Semesters

@router.get("/semesters", response_model=SemesterListEnvelope)
async def list_semesters(
    academic_year_id: Optional[int] = Query(None, alias="academicYearId"),
    claims: TokenClaims = Depends(get_current_claims),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> SemesterListEnvelope:
    semesters = await service.list_semesters(academic_year_id)
    return SemesterListEnvelope(data=[SemesterResponse.model_validate(s) for s in semesters])


@router.post("/semesters", response_model=SemesterEnvelope, status_code=status.HTTP_201_CREATED)
async def create_semester(
    request: SemesterCreate,
    response: Response,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> SemesterEnvelope:
    semester = await service.create_semester(request)
    if semester.is_active:
        set_active_semester_cookie(response, semester.id)
    return SemesterEnvelope(data=SemesterResponse.model_validate(semester))


@router.get("/semesters/{semester_id}", response_model=SemesterEnvelope)
async def get_semester(
    semester_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> SemesterEnvelope:
    return SemesterEnvelope(data=SemesterResponse.model_validate(await service.get_semester(semester_id)))


@router.put("/semesters/{semester_id}", response_model=SemesterEnvelope)
async def update_semester(
    semester_id: int,
    request: SemesterUpdate,
    response: Response,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> SemesterEnvelope:
    semester = await service.update_semester(semester_id, request)
    if request.is_active:
        set_active_semester_cookie(response, semester.id)
    return SemesterEnvelope(data=SemesterResponse.model_validate(semester))


@router.delete("/semesters/{semester_id}", response_model=MessageEnvelope)
async def delete_semester(
    semester_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: AcademicYearService = Depends(get_academic_year_service)
) -> MessageEnvelope:
    await service.delete_semester(semester_id)
    return MessageEnvelope(message="Semester deleted successfully")


# Grade levels

@router.get("/grade-levels", response_model=GradeLevelListEnvelope)
async def list_grade_levels(
    claims: TokenClaims = Depends(get_current_claims),
    service: GradeLevelService = Depends(get_grade_level_service)
) -> GradeLevelListEnvelope:
    return GradeLevelListEnvelope(grade_levels=await service.list_grade_levels())


@router.post("/grade-levels", response_model=GradeLevelEnvelope, status_code=status.HTTP_201_CREATED)
async def create_grade_level(
    request: GradeLevelCreate,
    claims: TokenClaims = Depends(require_admin),
    service: GradeLevelService = Depends(get_grade_level_service)
) -> GradeLevelEnvelope:
    grade_level = await service.create_grade_level(request)
    return GradeLevelEnvelope(grade_level=GradeLevelResponse.model_validate(grade_level))


@router.get("/grade-levels/{grade_level_id}", response_model=GradeLevelEnvelope)
async def get_grade_level(
    grade_level_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: GradeLevelService = Depends(get_grade_level_service)
) -> GradeLevelEnvelope:
    grade_level = await service.get_grade_level(grade_level_id)
    return GradeLevelEnvelope(grade_level=GradeLevelResponse.model_validate(grade_level))


@router.put("/grade-levels/{grade_level_id}", response_model=GradeLevelEnvelope)
async def update_grade_level(
    grade_level_id: int,
    request: GradeLevelUpdate,
    claims: TokenClaims = Depends(require_admin),
    service: GradeLevelService = Depends(get_grade_level_service)
) -> GradeLevelEnvelope:
    grade_level = await service.update_grade_level(grade_level_id, request)
    return GradeLevelEnvelope(grade_level=GradeLevelResponse.model_validate(grade_level))


@router.delete("/grade-levels/{grade_level_id}", response_model=MessageEnvelope)
async def delete_grade_level(
    grade_level_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: GradeLevelService = Depends(get_grade_level_service)
) -> MessageEnvelope:
    await service.delete_grade_level(grade_level_id)
    return MessageEnvelope(message="Grade level deleted successfully")


# Classrooms

@router.get("/classes", response_model=ClassRoomListEnvelope)
async def list_classes(
    grade_level: Optional[int] = Query(None, alias="gradeLevel"),
    claims: TokenClaims = Depends(get_current_claims),
    service: ClassService = Depends(get_class_service)
) -> ClassRoomListEnvelope:
    """Classrooms visible to the requester's role"""
    class_rooms = await service.list_classes(claims.role, claims.user_id, grade_level)
    return ClassRoomListEnvelope(class_rooms=class_rooms, data=class_rooms)


@router.get("/classrooms", response_model=ClassRoomListEnvelope)
async def list_classrooms(
    claims: TokenClaims = Depends(require_admin),
    service: ClassService = Depends(get_class_service)
) -> ClassRoomListEnvelope:
    class_rooms = await service.list_all_classrooms()
    return ClassRoomListEnvelope(class_rooms=class_rooms, data=class_rooms)


@router.post("/classrooms", response_model=ClassRoomEnvelope, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    request: ClassRoomCreate,
    claims: TokenClaims = Depends(require_admin),
    service: ClassService = Depends(get_class_service)
) -> ClassRoomEnvelope:
    return ClassRoomEnvelope(data=await service.create_classroom(request))


@router.get("/classrooms/{class_room_id}", response_model=ClassRoomEnvelope)
async def get_classroom(
    class_room_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: ClassService = Depends(get_class_service)
) -> ClassRoomEnvelope:
    return ClassRoomEnvelope(data=await service.get_classroom(class_room_id))


@router.put("/classrooms/{class_room_id}", response_model=ClassRoomEnvelope)
async def update_classroom(
    class_room_id: int,
    request: ClassRoomUpdate,
    claims: TokenClaims = Depends(require_admin),
    service: ClassService = Depends(get_class_service)
) -> ClassRoomEnvelope:
    return ClassRoomEnvelope(data=await service.update_classroom(class_room_id, request))


@router.delete("/classrooms/{class_room_id}", response_model=MessageEnvelope)
async def delete_classroom(
    class_room_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: ClassService = Depends(get_class_service)
) -> MessageEnvelope:
    await service.delete_classroom(class_room_id)
    return MessageEnvelope(message="Classroom deleted successfully")


# Special locations and subjects

@router.get("/special-locations", response_model=SpecialLocationListEnvelope)
async def list_special_locations(
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SpecialLocationListEnvelope:
    locations = await service.list_special_locations()
    return SpecialLocationListEnvelope(data=[SpecialLocationResponse.model_validate(location) for location in locations])


@router.post("/special-locations", response_model=SpecialLocationEnvelope, status_code=status.HTTP_201_CREATED)
async def create_special_location(
    request: SpecialLocationCreate,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SpecialLocationEnvelope:
    location = await service.create_special_location(request)
    return SpecialLocationEnvelope(data=SpecialLocationResponse.model_validate(location))


@router.get("/special-locations/{location_id}", response_model=SpecialLocationEnvelope)
async def get_special_location(
    location_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SpecialLocationEnvelope:
    location = await service.get_special_location(location_id)
    return SpecialLocationEnvelope(data=SpecialLocationResponse.model_validate(location))


@router.put("/special-locations/{location_id}", response_model=SpecialLocationEnvelope)
async def update_special_location(
    location_id: int,
    request: SpecialLocationUpdate,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SpecialLocationEnvelope:
    location = await service.update_special_location(location_id, request)
    return SpecialLocationEnvelope(data=SpecialLocationResponse.model_validate(location))


@router.delete("/special-locations/{location_id}", response_model=MessageEnvelope)
async def delete_special_location(
    location_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> MessageEnvelope:
    await service.delete_special_location(location_id)
    return MessageEnvelope(message="Special location deleted successfully")


@router.get("/subjects", response_model=SubjectListEnvelope)
async def list_subjects(
    claims: TokenClaims = Depends(get_current_claims),
    service: CatalogService = Depends(get_catalog_service)
) -> SubjectListEnvelope:
    subjects = await service.list_subjects()
    return SubjectListEnvelope(data=[SubjectResponse.model_validate(s) for s in subjects])


@router.post("/subjects", response_model=SubjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_subject(
    request: SubjectCreate,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SubjectEnvelope:
    subject = await service.create_subject(request)
    return SubjectEnvelope(data=SubjectResponse.model_validate(subject))


@router.get("/subjects/{subject_id}", response_model=SubjectEnvelope)
async def get_subject(
    subject_id: int,
    claims: TokenClaims = Depends(get_current_claims),
    service: CatalogService = Depends(get_catalog_service)
) -> SubjectEnvelope:
    subject = await service.get_subject(subject_id)
    return SubjectEnvelope(data=SubjectResponse.model_validate(subject))


@router.put("/subjects/{subject_id}", response_model=SubjectEnvelope)
async def update_subject(
    subject_id: int,
    request: SubjectUpdate,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> SubjectEnvelope:
    subject = await service.update_subject(subject_id, request)
    return SubjectEnvelope(data=SubjectResponse.model_validate(subject))


@router.delete("/subjects/{subject_id}", response_model=MessageEnvelope)
async def delete_subject(
    subject_id: int,
    claims: TokenClaims = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service)
) -> MessageEnvelope:
    await service.delete_subject(subject_id)
    return MessageEnvelope(message="Subject deleted successfully")
