from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from coursetrack.db.session import Base


class Program(Base):
    """Degree program. Reference data; maintained outside this service."""

    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True)
    name_th = Column(String(255), nullable=False)
    name_eng = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
