from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from coursetrack.db.session import Base


class User(Base):
    """Instructor or staff member. Rows are provisioned by the identity integration at login."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name_th = Column(String(255), nullable=True)
    last_name_th = Column(String(255), nullable=True)
    first_name_en = Column(String(255), nullable=True)
    last_name_en = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
