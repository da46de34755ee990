from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Timetable(Base):
    __tablename__ = "timetables"

    class_room_id = Column(Integer, ForeignKey("class_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False, index=True)
    special_location_id = Column(Integer, ForeignKey("special_locations.id", ondelete="SET NULL"), nullable=True)
    # 0 = Sunday ... 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    notes = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    class_room = relationship("ClassRoom", back_populates="timetables")
    subject = relationship("Subject")
    teacher = relationship("Teacher", back_populates="timetables")
    time_slot = relationship("TimeSlot", back_populates="timetables")
    semester = relationship("Semester", back_populates="timetables")
    special_location = relationship("SpecialLocation", back_populates="timetables")

    def __repr__(self):
        return (
            f"<Timetable(id={self.id}, class_room_id={self.class_room_id}, "
            f"day={self.day_of_week}, slot={self.time_slot_id})>"
        )
