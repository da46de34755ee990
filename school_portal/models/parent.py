from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from school_portal.core.database import Base


class Parent(Base):
    __tablename__ = "parents"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    occupation = Column(String, nullable=True)
    address = Column(String, nullable=True)

    user = relationship("User", back_populates="parent_profile")
    student_links = relationship("StudentParent", back_populates="parent", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Parent(id={self.id}, user_id={self.user_id})>"


class StudentParent(Base):
    __tablename__ = "student_parents"
    __table_args__ = (UniqueConstraint("student_id", "parent_id", name="uq_student_parent"),)

    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("parents.id", ondelete="CASCADE"), nullable=False, index=True)
    # Father, Mother, Guardian...
    relation = Column("relationship", String, nullable=False, default="Parent")

    student = relationship("Student", back_populates="parent_links")
    parent = relationship("Parent", back_populates="student_links")
