from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Semester(Base):
    __tablename__ = "semesters"

    academic_year_id = Column(Integer, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=True)
    semester_number = Column(Integer, nullable=False, default=1)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)

    academic_year = relationship("AcademicYear", back_populates="semesters")
    timetables = relationship("Timetable", back_populates="semester", passive_deletes=True)
    assignments = relationship("Assignment", back_populates="semester", passive_deletes=True)

    def __repr__(self):
        return f"<Semester(id={self.id}, name={self.name}, active={self.is_active})>"
