from datetime import date, datetime
from typing import Dict, List, Optional

from school_portal.schemas.academic.responses import (
    ClassRoomBrief,
    GradeLevelResponse,
    SubjectResponse,
)
from school_portal.schemas.base import CamelModel, Envelope
from school_portal.schemas.enums import AttendanceStatus, SubmissionStatus
from school_portal.schemas.people.responses import StudentResponse, TeacherResponse
from school_portal.schemas.timetable.responses import TimeSlotResponse, WeekSlotTeacher


class SubmissionResponse(CamelModel):
    id: int
    assignment_id: int
    student_id: int
    content: Optional[str] = None
    submitted_at: datetime
    marks_obtained: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    graded_by_id: Optional[int] = None


class SubmissionDetailResponse(SubmissionResponse):
    student: Optional[StudentResponse] = None


class AssignmentResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    subject_id: int
    teacher_id: int
    class_room_id: int
    semester_id: Optional[int] = None
    due_date: datetime
    total_marks: float
    is_active: bool
    subject: Optional[SubjectResponse] = None
    class_room: Optional[ClassRoomBrief] = None
    teacher: Optional[TeacherResponse] = None
    submissions: List[SubmissionResponse] = []


class SubjectAssignmentGroup(CamelModel):
    """A subject a teacher is assigned to, with the classes its coursework reaches"""
    subject: SubjectResponse
    grades: List[GradeLevelResponse] = []
    classrooms: List[ClassRoomBrief] = []
    assignments: List[AssignmentResponse] = []


class AssignmentStatusResponse(CamelModel):
    """One assignment as seen from a single student's side"""
    id: int
    title: str
    subject: str
    due_date: datetime
    status: SubmissionStatus
    marks: Optional[float] = None
    total_marks: float


class ExamResultResponse(CamelModel):
    id: int
    exam_id: int
    student_id: int
    marks_obtained: float
    grade: str
    remarks: Optional[str] = None
    student: Optional[StudentResponse] = None


class ExamResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    subject_id: int
    teacher_id: int
    class_room_id: int
    semester_id: Optional[int] = None
    exam_date: datetime
    duration: int
    total_marks: float
    is_active: bool
    subject: Optional[SubjectResponse] = None
    class_room: Optional[ClassRoomBrief] = None
    teacher: Optional[TeacherResponse] = None
    result_count: int = 0


class ExamDetailResponse(ExamResponse):
    results: List[ExamResultResponse] = []


class ExamStatistics(CamelModel):
    total_students: int
    average_marks: float
    average_percentage: float
    highest_marks: float
    lowest_marks: float
    passed_students: int
    failed_students: int
    grade_distribution: Dict[str, int]


class GradeResponse(CamelModel):
    id: int
    student_id: int
    subject_id: int
    teacher_id: Optional[int] = None
    marks: float
    total_marks: float
    exam_type: str
    exam_date: date
    remarks: Optional[str] = None
    subject: Optional[SubjectResponse] = None
    percentage: float = 0
    letter_grade: str = "F"


class PerformanceEntry(CamelModel):
    subject: str
    marks: float
    total_marks: float
    exam_type: str
    date: date
    percentage: float
    grade: str


class AttendanceRecordResponse(CamelModel):
    id: int
    date: date
    status: AttendanceStatus
    remarks: Optional[str] = None
    class_room_id: int
    subject: Optional[SubjectResponse] = None
    time_slot: Optional[TimeSlotResponse] = None
    teacher: Optional[WeekSlotTeacher] = None


class AttendanceStatistics(CamelModel):
    total: int
    present: int
    absent: int
    late: int
    excused: int
    attendance_rate: float


# Envelopes
class AssignmentListEnvelope(Envelope):
    assignments: List[AssignmentResponse]


class AssignmentCreateEnvelope(Envelope):
    message: str
    assignments: List[AssignmentResponse]


class AssignmentStatusEnvelope(Envelope):
    assignments: List[AssignmentStatusResponse]


class SubmissionListEnvelope(Envelope):
    submissions: List[SubmissionDetailResponse]


class SubmissionEnvelope(Envelope):
    message: str
    submission: SubmissionDetailResponse


class GradeListEnvelope(Envelope):
    grades: List[GradeResponse]


class GradeEnvelope(Envelope):
    grade: GradeResponse


class PerformanceEnvelope(Envelope):
    performance: List[PerformanceEntry]


class AttendanceListEnvelope(Envelope):
    attendance: List[AttendanceRecordResponse]


class ParentAttendanceEnvelope(Envelope):
    attendance: List[AttendanceRecordResponse]
    statistics: AttendanceStatistics


class SubjectAssignmentsEnvelope(Envelope):
    subjects: List[SubjectAssignmentGroup]


class ExamListEnvelope(Envelope):
    exams: List[ExamResponse]


class ExamEnvelope(Envelope):
    exam: ExamDetailResponse
    message: Optional[str] = None


class ExamResultsEnvelope(Envelope):
    exam: ExamResponse
    results: List[ExamResultResponse]
    statistics: Optional[ExamStatistics] = None


class ExamResultsSavedEnvelope(Envelope):
    message: str
    results: List[ExamResultResponse]


class AttendanceGradeLevelsEnvelope(Envelope):
    grade_levels: List[GradeLevelResponse]


class AttendanceMarkEnvelope(Envelope):
    message: str
    records: int
    created: int
    updated: int
