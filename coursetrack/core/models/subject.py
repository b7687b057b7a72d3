from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from coursetrack.db.session import Base
from coursetrack.core.models.student_year import subjects_student_years


class Subject(Base):
    """Course subject. Read-only from the term engine's point of view."""

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    program_id = Column(Integer, ForeignKey("programs.id", ondelete="SET NULL"), nullable=True)
    code_th = Column(String(50), nullable=True)
    code_eng = Column(String(50), nullable=False)
    name_th = Column(String(255), nullable=True)
    name_eng = Column(String(255), nullable=False)
    credit = Column(String(20), nullable=True)  # e.g. "3(3-0-6)"
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    program = relationship("Program")
    student_years = relationship("StudentYear", secondary=subjects_student_years)
