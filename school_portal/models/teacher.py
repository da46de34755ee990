from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Teacher(Base):
    __tablename__ = "teachers"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    employee_id = Column(String, unique=True, nullable=True)
    specialization = Column(String, nullable=True)
    hire_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="teacher_profile")
    subjects = relationship("TeacherSubject", back_populates="teacher", cascade="all, delete-orphan")
    class_rooms = relationship("ClassRoom", back_populates="class_teacher")
    timetables = relationship("Timetable", back_populates="teacher")
    assignments = relationship("Assignment", back_populates="teacher")

    def __repr__(self):
        return f"<Teacher(id={self.id}, user_id={self.user_id})>"


class TeacherSubject(Base):
    __tablename__ = "teacher_subjects"
    __table_args__ = (UniqueConstraint("teacher_id", "subject_id", name="uq_teacher_subject"),)

    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)

    teacher = relationship("Teacher", back_populates="subjects")
    subject = relationship("Subject", back_populates="teachers")
