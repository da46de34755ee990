from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Exam(Base):
    __tablename__ = "exams"

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    class_room_id = Column(Integer, ForeignKey("class_rooms.id"), nullable=False, index=True)
    semester_id = Column(Integer, ForeignKey("semesters.id", ondelete="SET NULL"), nullable=True)
    exam_date = Column(DateTime(timezone=True), nullable=False)
    # Minutes
    duration = Column(Integer, default=120, nullable=False)
    total_marks = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    subject = relationship("Subject")
    teacher = relationship("Teacher")
    class_room = relationship("ClassRoom")
    results = relationship("ExamResult", back_populates="exam", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Exam(id={self.id}, title={self.title})>"


class ExamResult(Base):
    __tablename__ = "exam_results"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_exam_result"),)

    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    marks_obtained = Column(Float, nullable=False)
    # Letter on the school's grading scale
    grade = Column(String, nullable=False)
    remarks = Column(String, nullable=True)

    exam = relationship("Exam", back_populates="results")
    student = relationship("Student")
