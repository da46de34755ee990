from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class GradeLevel(Base):
    __tablename__ = "grade_levels"

    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=False)
    level = Column(Integer, unique=True, nullable=False)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    class_rooms = relationship("ClassRoom", back_populates="grade_level", passive_deletes=True)
    subjects = relationship("Subject", back_populates="grade_level", passive_deletes=True)

    def __repr__(self):
        return f"<GradeLevel(id={self.id}, level={self.level})>"
