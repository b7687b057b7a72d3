"""Workload ledger entry. A term subject may carry any number of these."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from coursetrack.db.session import Base


class WorkDetail(Base):
    __tablename__ = "work_details"
    __table_args__ = (
        CheckConstraint("hours_per_week > 0 AND hours_per_week <= 168", name="ck_work_details_hours"),
        CheckConstraint("end_date >= start_date", name="ck_work_details_dates"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    term_subject_id = Column(Integer, ForeignKey("term_subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    work_title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    hours_per_week = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    term_subject = relationship("TermSubject", back_populates="works")
