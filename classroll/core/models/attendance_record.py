import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid

from classroll.core.enums import AttendanceStatus
from classroll.core.timeutils import format_day, utcnow
from classroll.db.session import Base


STATUSES = tuple(s.value for s in AttendanceStatus)
UNIQUE_TRIPLE_CONSTRAINT = "uq_attendance_class_student_date"


class AttendanceRecord(Base):
    """One row per (class_id, student_id, date). Re-marking overwrites the row in place."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("class_id", "student_id", "date", name=UNIQUE_TRIPLE_CONSTRAINT),
        Index("ix_attendance_class_date", "class_id", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    # Calendar day only; normalized by AttendanceStore before any write or lookup
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="present")  # present, absent, late, excused
    marked_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


def display_date(record: AttendanceRecord) -> str:
    """Calendar day as shown in the roster view, e.g. 'Oct 19, 2026'."""
    return format_day(record.date)
