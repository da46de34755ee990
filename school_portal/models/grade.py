from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Grade(Base):
    __tablename__ = "grades"

    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    marks = Column(Float, nullable=False)
    total_marks = Column(Float, nullable=False)
    # MIDTERM, FINAL, QUIZ, ...
    exam_type = Column(String, nullable=False)
    exam_date = Column(Date, nullable=False)
    remarks = Column(String, nullable=True)

    student = relationship("Student", back_populates="grades")
    subject = relationship("Subject")
    teacher = relationship("Teacher")
