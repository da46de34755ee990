from sqlalchemy import Boolean, Column, Date, Enum, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base
from school_portal.schemas.enums import PlanningStatus


class AcademicYear(Base):
    __tablename__ = "academic_years"

    name = Column(String, unique=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(PlanningStatus), default=PlanningStatus.PLANNING, nullable=False)
    description = Column(String, nullable=True)

    semesters = relationship(
        "Semester",
        back_populates="academic_year",
        cascade="all, delete-orphan",
        order_by="Semester.semester_number"
    )
    class_rooms = relationship("ClassRoom", back_populates="academic_year", passive_deletes=True)

    def __repr__(self):
        return f"<AcademicYear(id={self.id}, name={self.name}, active={self.is_active})>"
