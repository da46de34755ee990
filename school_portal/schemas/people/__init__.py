from .requests import ParentStudentLinks, TeacherSubjectLinks
from .responses import (
    UserResponse,
    TeacherResponse,
    StudentResponse,
    ParentResponse,
    ChildResponse,
    LinkedParentResponse,
    ProfileResponse,
    StudentListEnvelope,
    ChildrenEnvelope,
    ParentStudentsEnvelope,
    TeacherSubjectsEnvelope,
)
