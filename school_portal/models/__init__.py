from school_portal.models.user import User
from school_portal.models.teacher import Teacher, TeacherSubject
from school_portal.models.student import Student
from school_portal.models.parent import Parent, StudentParent
from school_portal.models.academic_year import AcademicYear
from school_portal.models.semester import Semester
from school_portal.models.grade_level import GradeLevel
from school_portal.models.class_room import ClassRoom
from school_portal.models.subject import Subject
from school_portal.models.special_location import SpecialLocation
from school_portal.models.time_slot import TimeSlot
from school_portal.models.timetable import Timetable
from school_portal.models.assignment import Assignment, AssignmentSubmission
from school_portal.models.attendance import Attendance
from school_portal.models.grade import Grade
from school_portal.models.exam import Exam, ExamResult
from school_portal.models.notification import Notification
from school_portal.models.chat import Chat, ChatParticipant, Message

__all__ = [
    "User",
    "Teacher",
    "TeacherSubject",
    "Student",
    "Parent",
    "StudentParent",
    "AcademicYear",
    "Semester",
    "GradeLevel",
    "ClassRoom",
    "Subject",
    "SpecialLocation",
    "TimeSlot",
    "Timetable",
    "Assignment",
    "AssignmentSubmission",
    "Attendance",
    "Grade",
    "Exam",
    "ExamResult",
    "Notification",
    "Chat",
    "ChatParticipant",
    "Message",
]
