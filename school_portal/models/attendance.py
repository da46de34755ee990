from sqlalchemy import Column, Date, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from school_portal.core.database import Base
from school_portal.schemas.enums import AttendanceStatus


class Attendance(Base):
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("student_id", "timetable_id", "date", name="uq_attendance_student_lesson_date"),
    )

    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    class_room_id = Column(Integer, ForeignKey("class_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    timetable_id = Column(Integer, ForeignKey("timetables.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(Enum(AttendanceStatus), nullable=False)
    remarks = Column(String, nullable=True)

    student = relationship("Student", back_populates="attendances")
    teacher = relationship("Teacher")
    class_room = relationship("ClassRoom")
    timetable = relationship("Timetable")

    def __repr__(self):
        return f"<Attendance(student_id={self.student_id}, date={self.date}, status={self.status})>"
