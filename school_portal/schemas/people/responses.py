from datetime import date
from typing import List, Optional

from school_portal.schemas.academic.responses import ClassRoomBrief, SubjectResponse
from school_portal.schemas.base import CamelModel, Envelope
from school_portal.schemas.enums import UserRoleEnum


class UserResponse(CamelModel):
    id: int
    email: str
    name: str
    name_ar: Optional[str] = None
    role: UserRoleEnum
    phone: Optional[str] = None
    is_active: bool


class TeacherResponse(CamelModel):
    id: int
    user_id: int
    employee_id: Optional[str] = None
    specialization: Optional[str] = None
    user: Optional[UserResponse] = None


class StudentResponse(CamelModel):
    id: int
    user_id: int
    student_number: Optional[str] = None
    class_room_id: Optional[int] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    is_active: bool
    user: Optional[UserResponse] = None
    class_room: Optional[ClassRoomBrief] = None


class ParentResponse(CamelModel):
    id: int
    user_id: int
    occupation: Optional[str] = None
    address: Optional[str] = None
    user: Optional[UserResponse] = None


class ChildResponse(StudentResponse):
    relationship: str


class LinkedParentResponse(ParentResponse):
    relationship: str


class ProfileResponse(UserResponse):
    teacher: Optional[TeacherResponse] = None
    student: Optional[StudentResponse] = None
    parents: List[LinkedParentResponse] = []
    parent: Optional[ParentResponse] = None
    children: List[ChildResponse] = []


# Envelopes
class StudentListEnvelope(Envelope):
    students: List[StudentResponse]
    count: int


class ChildrenEnvelope(Envelope):
    children: List[ChildResponse]


class ParentStudentsEnvelope(Envelope):
    parent: ParentResponse
    students: List[ChildResponse]


class TeacherSubjectsEnvelope(Envelope):
    teacher: TeacherResponse
    subjects: List[SubjectResponse]
