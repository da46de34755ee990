from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Subject(Base):
    __tablename__ = "subjects"

    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=True)
    code = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
    grade_level_id = Column(Integer, ForeignKey("grade_levels.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    grade_level = relationship("GradeLevel", back_populates="subjects")
    teachers = relationship("TeacherSubject", back_populates="subject", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Subject(id={self.id}, code={self.code})>"
