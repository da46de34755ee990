from .requests import (
    AssignmentCreate,
    AttendanceEntry,
    AttendanceMarkRequest,
    GradeCreate,
    SubmissionCreate,
    SubmissionGrade,
    ExamCreate,
    ExamUpdate,
    ExamResultEntry,
    ExamResultsRequest,
)
from .responses import (
    SubmissionResponse,
    SubmissionDetailResponse,
    AssignmentResponse,
    SubjectAssignmentGroup,
    AssignmentStatusResponse,
    ExamResultResponse,
    ExamResponse,
    ExamDetailResponse,
    ExamStatistics,
    GradeResponse,
    PerformanceEntry,
    AttendanceRecordResponse,
    AttendanceStatistics,
    AssignmentListEnvelope,
    AssignmentCreateEnvelope,
    AssignmentStatusEnvelope,
    SubmissionListEnvelope,
    SubmissionEnvelope,
    GradeListEnvelope,
    GradeEnvelope,
    PerformanceEnvelope,
    AttendanceListEnvelope,
    ParentAttendanceEnvelope,
    SubjectAssignmentsEnvelope,
    ExamListEnvelope,
    ExamEnvelope,
    ExamResultsEnvelope,
    ExamResultsSavedEnvelope,
    AttendanceGradeLevelsEnvelope,
    AttendanceMarkEnvelope,
)
