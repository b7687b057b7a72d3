from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from coursetrack.db.session import Base
from coursetrack.core.enums import DocumentApproval, WorkloadApproval


class TermSubject(Base):
    """
    One subject's participation in one term. Tracks three filed flags (outline,
    workload, report), approval for outline and report, and the workload
    approval lifecycle pending -> submitted -> approved.
    """

    __tablename__ = "term_subjects"
    __table_args__ = (
        UniqueConstraint("term_id", "subject_id", name="uq_term_subjects_term_subject"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    term_id = Column(Integer, ForeignKey("terms.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    outline_status = Column(Boolean, nullable=False, default=False)
    outline_approved = Column(String(20), nullable=False, default=DocumentApproval.pending.value)
    workload_status = Column(Boolean, nullable=False, default=False)
    workload_approved = Column(String(20), nullable=False, default=WorkloadApproval.pending.value, index=True)
    report_status = Column(Boolean, nullable=False, default=False)
    report_approved = Column(String(20), nullable=False, default=DocumentApproval.pending.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=datetime.utcnow)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    term = relationship("Term", back_populates="term_subjects")
    subject = relationship("Subject")
    professors = relationship(
        "TermSubjectProfessor",
        back_populates="term_subject",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    works = relationship(
        "WorkDetail",
        back_populates="term_subject",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
