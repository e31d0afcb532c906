"""School classes. Model named SchoolClass to avoid Python 'class' keyword."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from classroll.core.timeutils import utcnow
from classroll.db.session import Base


class SchoolClass(Base):
    """A class taught by one teacher (teacher_id is the owner for attendance purposes)."""

    __tablename__ = "classes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_name = Column(String(100), nullable=False, unique=True)
    academic_year = Column(String(20), nullable=False)
    semester = Column(String(20), nullable=False, default="Fall")  # Fall, Spring, Summer
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
