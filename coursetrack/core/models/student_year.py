from sqlalchemy import Column, ForeignKey, Integer, String, Table

from coursetrack.db.session import Base


subjects_student_years = Table(
    "subjects_student_years",
    Base.metadata,
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    Column("student_year_id", Integer, ForeignKey("student_years.id", ondelete="CASCADE"), primary_key=True),
)


class StudentYear(Base):
    """Student year level (1-4) a subject is intended for."""

    __tablename__ = "student_years"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_year = Column(Integer, nullable=False, unique=True)  # 1..4
    label = Column(String(100), nullable=True)
