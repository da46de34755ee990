from .academic_year_service import AcademicYearService
from .assignment_service import AssignmentService
from .attendance_service import AttendanceService
from .auth_service import AuthService
from .catalog_service import CatalogService
from .chat_service import ChatService
from .class_service import ClassService
from .exam_service import ExamService
from .grade_level_service import GradeLevelService
from .grade_service import GradeService
from .notification_service import NotificationService
from .student_service import StudentService
from .teacher_service import TeacherService
from .timetable_service import TimetableService

__all__ = [
    "AcademicYearService",
    "AssignmentService",
    "AttendanceService",
    "AuthService",
    "CatalogService",
    "ChatService",
    "ClassService",
    "ExamService",
    "GradeLevelService",
    "GradeService",
    "NotificationService",
    "StudentService",
    "TeacherService",
    "TimetableService",
]
