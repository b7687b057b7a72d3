from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from coursetrack.db.session import Base


class Term(Base):
    """
    One academic offering period, identified by (academic_year, academic_sector).
    Status (ongoing / ended) is derived from term_end_date and never stored.
    is_active is an explicit administrator flag; at most one row should carry it.
    """

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("academic_year", "academic_sector", name="uq_terms_year_sector"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    academic_year = Column(Integer, nullable=False)  # institution calendar, e.g. 2569
    academic_sector = Column(Integer, nullable=False)  # 1 | 2 | 3
    term_start_date = Column(Date, nullable=False)
    term_end_date = Column(Date, nullable=False)
    midterm_start_date = Column(Date, nullable=False)
    midterm_end_date = Column(Date, nullable=False)
    final_start_date = Column(Date, nullable=False)
    final_end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    term_subjects = relationship(
        "TermSubject",
        back_populates="term",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
