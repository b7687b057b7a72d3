"""
Audit trail for workload approval transitions. Every submit / approve / reject
appends one row. Rejection reasons are kept here as remarks only.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from coursetrack.db.session import Base


class TermSubjectAuditLog(Base):
    __tablename__ = "term_subject_audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    term_subject_id = Column(Integer, ForeignKey("term_subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=True)
    performed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    remarks = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
