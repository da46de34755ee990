from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class SpecialLocation(Base):
    __tablename__ = "special_locations"

    name = Column(String, unique=True, nullable=False)
    name_ar = Column(String, nullable=True)
    # LAB, GYM, LIBRARY, ...
    type = Column(String, nullable=False, default="OTHER")
    capacity = Column(Integer, nullable=True)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    timetables = relationship("Timetable", back_populates="special_location")
