from typing import List, Optional

from pydantic import Field

from school_portal.schemas.base import CamelModel


class ParentStudentLinks(CamelModel):
    """Replaces every link of a parent; an empty list unlinks all children"""
    student_ids: List[int]
    relationship: Optional[str] = Field(default=None, min_length=1)


class TeacherSubjectLinks(CamelModel):
    """Replaces every subject a teacher is assigned to"""
    subject_ids: List[int]
