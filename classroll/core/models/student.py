import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid

from classroll.core.timeutils import utcnow
from classroll.db.session import Base


class Student(Base):
    """Student record. class_id is the class the student is currently enrolled in."""

    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
