from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Student(Base):
    __tablename__ = "students"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    student_number = Column(String, unique=True, nullable=True)
    class_room_id = Column(Integer, ForeignKey("class_rooms.id", ondelete="SET NULL"), nullable=True, index=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="student_profile")
    class_room = relationship("ClassRoom", back_populates="students")
    parent_links = relationship("StudentParent", back_populates="student", cascade="all, delete-orphan")
    attendances = relationship("Attendance", back_populates="student", cascade="all, delete-orphan")
    grades = relationship("Grade", back_populates="student", cascade="all, delete-orphan")
    submissions = relationship("AssignmentSubmission", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student(id={self.id}, student_number={self.student_number})>"
