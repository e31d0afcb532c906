import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from classroll.core.enums import UserRole
from classroll.core.timeutils import utcnow
from classroll.db.session import Base


class User(Base):
    """Staff account. Accounts are managed elsewhere; attendance only reads them."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(50), nullable=False, default=UserRole.TEACHER.value)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
