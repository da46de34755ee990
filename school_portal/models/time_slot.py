from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class TimeSlot(Base):
    __tablename__ = "time_slots"

    name = Column(String, nullable=False)
    name_ar = Column(String, nullable=True)
    # HH:MM, 24h
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    slot_order = Column(Integer, nullable=False)
    is_break = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    timetables = relationship("Timetable", back_populates="time_slot")
