"""
Persistence for attendance records.

Every write goes through AttendanceStore. The natural key (class_id, student_id,
date) is backed by the uq_attendance_class_student_date constraint; upsert
treats that constraint as authoritative and retries as an update when a
concurrent writer inserted the row first, so the last writer to commit wins.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, NamedTuple, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classroll.core.config import settings
from classroll.core.enums import UpsertAction
from classroll.core.exceptions import ConflictError, NotFoundError, ValidationError
from classroll.core.models import AttendanceRecord
from classroll.core.models.attendance_record import STATUSES, UNIQUE_TRIPLE_CONSTRAINT
from classroll.core.timeutils import reference_tz, utcnow

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime, str]


class UpsertResult(NamedTuple):
    action: str  # created | updated
    record: AttendanceRecord


def normalize_day(value: DayLike) -> date:
    """
    Reduce a day-like value to its calendar day.

    Accepts a date, a datetime (aware values are read in the reference timezone)
    or an ISO string ("2026-10-19" or a full ISO datetime).
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(reference_tz())
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date '{value}'. Expected YYYY-MM-DD")
        return normalize_day(parsed)
    raise ValidationError(f"Invalid date '{value}'. Expected YYYY-MM-DD")


def validate_status(value: Any) -> str:
    status_value = str(value).strip().lower() if value is not None else ""
    if status_value not in STATUSES:
        raise ValidationError(f"Invalid status: {value}. Expected one of {', '.join(STATUSES)}")
    return status_value


def _violated_constraint(exc: IntegrityError) -> str:
    """
    Classify an IntegrityError as "unique_triple", "foreign_key" or "other".

    asyncpg reports the constraint name on the driver error (the adapted error's
    __cause__); SQLite only names the columns in its message.
    """
    orig = exc.orig
    driver_error = getattr(orig, "__cause__", None)
    constraint = getattr(orig, "constraint_name", None) or getattr(driver_error, "constraint_name", None)
    text = str(orig)
    if constraint == UNIQUE_TRIPLE_CONSTRAINT or UNIQUE_TRIPLE_CONSTRAINT in text:
        return "unique_triple"
    if "UNIQUE constraint failed: attendance_records.class_id, attendance_records.student_id" in text:
        return "unique_triple"
    if "foreign key" in text.lower():
        return "foreign_key"
    return "other"


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


class AttendanceStore:
    def __init__(self, db: AsyncSession, max_attempts: Optional[int] = None) -> None:
        self.db = db
        self.max_attempts = max_attempts or settings.upsert_max_attempts

    async def _find_one(self, class_id: UUID, student_id: UUID, day: date) -> Optional[AttendanceRecord]:
        result = await self.db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.class_id == class_id,
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.date == day,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        class_id: UUID,
        student_id: UUID,
        day: DayLike,
        status: str,
        notes: Optional[str],
        marked_by: UUID,
    ) -> UpsertResult:
        """Create the record for (class, student, day) or overwrite it in place, then commit."""
        status_value = validate_status(status)
        att_day = normalize_day(day)
        notes_value = _clean_notes(notes)

        for attempt in range(1, self.max_attempts + 1):
            now = utcnow()
            record = await self._find_one(class_id, student_id, att_day)
            if record:
                record.status = status_value
                record.notes = notes_value
                record.marked_by = marked_by
                record.updated_at = now
                action = UpsertAction.UPDATED
            else:
                record = AttendanceRecord(
                    class_id=class_id,
                    student_id=student_id,
                    date=att_day,
                    status=status_value,
                    notes=notes_value,
                    marked_by=marked_by,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(record)
                action = UpsertAction.CREATED
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                violated = _violated_constraint(e)
                if violated == "foreign_key":
                    logger.info(
                        "Attendance upsert referenced a missing row: class=%s student=%s marked_by=%s",
                        class_id, student_id, marked_by,
                    )
                    raise NotFoundError(
                        f"Class {class_id}, student {student_id} or user {marked_by} not found"
                    )
                if violated != "unique_triple":
                    raise
                logger.warning(
                    "Attendance upsert raced on class=%s student=%s date=%s (attempt %d/%d)",
                    class_id, student_id, att_day, attempt, self.max_attempts,
                )
                continue
            return UpsertResult(action.value, record)

        raise ConflictError(
            f"Attendance for student {student_id} on {att_day} is being modified concurrently, please retry"
        )

    async def find(self, class_id: UUID, day: DayLike) -> List[AttendanceRecord]:
        att_day = normalize_day(day)
        result = await self.db.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.class_id == class_id, AttendanceRecord.date == att_day)
            .order_by(AttendanceRecord.created_at)
        )
        return list(result.scalars().all())

    async def find_range(
        self,
        class_id: UUID,
        start_day: Optional[DayLike] = None,
        end_day: Optional[DayLike] = None,
    ) -> List[AttendanceRecord]:
        """Records of a class with start_day <= date <= end_day. A missing bound leaves that side open."""
        stmt = select(AttendanceRecord).where(AttendanceRecord.class_id == class_id)
        if start_day is not None:
            stmt = stmt.where(AttendanceRecord.date >= normalize_day(start_day))
        if end_day is not None:
            stmt = stmt.where(AttendanceRecord.date <= normalize_day(end_day))
        result = await self.db.execute(stmt.order_by(AttendanceRecord.date, AttendanceRecord.created_at))
        return list(result.scalars().all())

    async def get(self, record_id: UUID) -> AttendanceRecord:
        record = await self.db.get(AttendanceRecord, record_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    async def update(self, record_id: UUID, fields: Dict[str, Any], marked_by: UUID) -> AttendanceRecord:
        """Apply status and/or notes. Fields absent from `fields` are left unchanged; a given status must be valid."""
        record = await self.get(record_id)
        if "status" in fields:
            record.status = validate_status(fields["status"])
        if "notes" in fields:
            record.notes = _clean_notes(fields["notes"])
        record.marked_by = marked_by
        record.updated_at = utcnow()
        await self.db.commit()
        return record

    async def delete(self, record_id: UUID) -> None:
        record = await self.get(record_id)
        await self.db.delete(record)
        await self.db.commit()
