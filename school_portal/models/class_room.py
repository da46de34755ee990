from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class ClassRoom(Base):
    __tablename__ = "class_rooms"
    __table_args__ = (
        UniqueConstraint("grade_level_id", "section", "academic_year_id", name="uq_class_room_section"),
        UniqueConstraint("room_number", "academic_year_id", name="uq_class_room_number"),
    )

    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=True)
    section = Column(String, nullable=False)
    room_number = Column(String, nullable=False)
    capacity = Column(Integer, default=30, nullable=False)
    grade_level_id = Column(Integer, ForeignKey("grade_levels.id"), nullable=False, index=True)
    academic_year_id = Column(Integer, ForeignKey("academic_years.id"), nullable=False, index=True)
    class_teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    grade_level = relationship("GradeLevel", back_populates="class_rooms")
    academic_year = relationship("AcademicYear", back_populates="class_rooms")
    class_teacher = relationship("Teacher", back_populates="class_rooms")
    students = relationship("Student", back_populates="class_room")
    timetables = relationship("Timetable", back_populates="class_room")
    assignments = relationship("Assignment", back_populates="class_room")

    def __repr__(self):
        return f"<ClassRoom(id={self.id}, name={self.name}, section={self.section})>"
