from .requests import (
    AcademicYearCreate,
    AcademicYearUpdate,
    SemesterCreate,
    SemesterUpdate,
    GradeLevelCreate,
    GradeLevelUpdate,
    ClassRoomCreate,
    ClassRoomUpdate,
    SpecialLocationCreate,
    SpecialLocationUpdate,
    SubjectCreate,
    SubjectUpdate,
)
from .responses import (
    SemesterResponse,
    AcademicYearResponse,
    GradeLevelResponse,
    GradeLevelStatsResponse,
    ClassRoomBrief,
    ClassRoomResponse,
    SpecialLocationResponse,
    SubjectResponse,
    AcademicYearEnvelope,
    AcademicYearListEnvelope,
    SemesterEnvelope,
    SemesterListEnvelope,
    GradeLevelEnvelope,
    GradeLevelListEnvelope,
    ClassRoomEnvelope,
    ClassRoomListEnvelope,
    SpecialLocationEnvelope,
    SpecialLocationListEnvelope,
    SubjectEnvelope,
    SubjectListEnvelope,
    MessageEnvelope,
)
