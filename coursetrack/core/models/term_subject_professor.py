"""Instructor assignment to a term subject. At most one row per term subject is the responsible lecturer."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import relationship

from coursetrack.db.session import Base


class TermSubjectProfessor(Base):
    __tablename__ = "term_subjects_professor"
    __table_args__ = (
        UniqueConstraint("term_subject_id", "user_id", name="uq_term_subjects_professor"),
        Index(
            "uq_term_subjects_professor_responsible",
            "term_subject_id",
            unique=True,
            postgresql_where=text("is_responsible"),
            sqlite_where=text("is_responsible = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    term_subject_id = Column(Integer, ForeignKey("term_subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_responsible = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    term_subject = relationship("TermSubject", back_populates="professors")
    user = relationship("User", foreign_keys=[user_id])
