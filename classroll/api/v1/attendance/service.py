"""Attendance service: bulk recording, single-record operations and summaries, gated per class."""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from classroll.auth.gate import AuthorizationGate
from classroll.auth.schemas import CurrentUser
from classroll.core.directory import ClassDirectory, Roster, StudentDirectory
from classroll.core.exceptions import (
    BulkAbortError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    StorageError,
    ValidationError,
)
from classroll.core.models import AttendanceRecord
from classroll.core.models.attendance_record import display_date
from classroll.core.schemas import ClassInfo, StudentInfo
from classroll.core.timeutils import reference_now

from .date_range import resolve_date_range
from .report import project_report
from .schemas import (
    AttendanceBulkResponse,
    AttendanceEntry,
    AttendanceRecordResponse,
    AttendanceReport,
    AttendanceSummaryResponse,
    BulkResultItem,
    DateRange,
    StatusTotals,
    StudentAttendanceSummary,
)
from .store import AttendanceStore, DayLike, normalize_day, validate_status

logger = logging.getLogger(__name__)

Now = Union[datetime, date]


# ----- Permission helpers -----
async def _authorize_class(
    db: AsyncSession,
    user: CurrentUser,
    class_id: UUID,
    gate: AuthorizationGate,
    verb: str,
) -> ClassInfo:
    """Resolve the class (404) and check the caller teaches it or holds an override role (403)."""
    school_class = await ClassDirectory(db).get(class_id)
    if not school_class:
        raise NotFoundError(f"Class {class_id} not found")
    if not await gate.can_access_class(user, class_id):
        logger.info("Attendance %s denied for user %s on class %s", verb, user.id, class_id)
        raise ForbiddenError(f"Access denied. You can only {verb} attendance for your own classes.")
    return school_class


def _record_response(record: AttendanceRecord, student: Optional[StudentInfo]) -> AttendanceRecordResponse:
    return AttendanceRecordResponse(
        id=record.id,
        class_id=record.class_id,
        student_id=record.student_id,
        student=student,
        date=record.date,
        display_date=display_date(record),
        status=record.status,
        notes=record.notes,
        marked_by=record.marked_by,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


async def _records_with_students(
    db: AsyncSession, records: Sequence[AttendanceRecord]
) -> List[AttendanceRecordResponse]:
    students = await StudentDirectory(db).get_many(r.student_id for r in records)
    return [_record_response(r, students.get(r.student_id)) for r in records]


def resolve_requested_range(
    start_day: Optional[DayLike] = None,
    end_day: Optional[DayLike] = None,
    timeframe: Optional[str] = None,
    now: Optional[Now] = None,
) -> Optional[DateRange]:
    """
    Range requested by a caller: a timeframe wins over explicit days.
    Explicit days must come as a pair with start <= end. None means no bounds.
    """
    if timeframe:
        return resolve_date_range(timeframe, now or reference_now())
    if (start_day is None) != (end_day is None):
        raise ValidationError("start_date and end_date must be provided together")
    if start_day is None:
        return None
    start, end = normalize_day(start_day), normalize_day(end_day)
    if start > end:
        raise ValidationError(f"start_date {start} is after end_date {end}")
    return DateRange(start_date=start, end_date=end)


# ----- Reads by day / range -----
async def get_attendance_for_day(
    db: AsyncSession,
    user: CurrentUser,
    class_id: UUID,
    day: DayLike,
    gate: Optional[AuthorizationGate] = None,
) -> List[AttendanceRecordResponse]:
    """Roster view: every record of the class on one calendar day."""
    await _authorize_class(db, user, class_id, gate or AuthorizationGate(db), "view")
    records = await AttendanceStore(db).find(class_id, day)
    return await _records_with_students(db, records)


async def get_attendance_for_range(
    db: AsyncSession,
    user: CurrentUser,
    class_id: UUID,
    start_day: DayLike,
    end_day: DayLike,
    gate: Optional[AuthorizationGate] = None,
) -> List[AttendanceRecordResponse]:
    await _authorize_class(db, user, class_id, gate or AuthorizationGate(db), "view")
    date_range = resolve_requested_range(start_day, end_day)
    if date_range is None:
        records = await AttendanceStore(db).find_range(class_id)
    else:
        records = await AttendanceStore(db).find_range(class_id, date_range.start_date, date_range.end_date)
    return await _records_with_students(db, records)


# ----- Bulk recording -----
async def record_attendance_bulk(
    db: AsyncSession,
    user: CurrentUser,
    entries: Sequence[AttendanceEntry],
    gate: Optional[AuthorizationGate] = None,
    store: Optional[AttendanceStore] = None,
) -> AttendanceBulkResponse:
    """
    Apply roster entries one at a time, in order, each committed before the next.

    The first entry that fails (missing class or student, not the caller's class,
    student not enrolled, bad day or status, a failed database write) stops the batch
    with BulkAbortError.
    Entries before it stay committed; entries after it are never attempted.
    """
    if not entries:
        raise ValidationError("Invalid records data")

    gate = gate or AuthorizationGate(db)
    store = store or AttendanceStore(db)
    students = StudentDirectory(db)
    roster = Roster(db)
    results: List[BulkResultItem] = []

    logger.info("Bulk attendance by user %s: %d entries", user.id, len(entries))
    for index, entry in enumerate(entries):
        try:
            await _authorize_class(db, user, entry.class_id, gate, "mark")
            student = await students.get(entry.student_id)
            if not student:
                raise NotFoundError(f"Student {entry.student_id} not found")
            if not await roster.is_enrolled(entry.student_id, entry.class_id):
                raise ValidationError(
                    f"Student {entry.student_id} is not enrolled in class {entry.class_id}"
                )
            upserted = await store.upsert(
                entry.class_id,
                entry.student_id,
                entry.date,
                entry.status,
                entry.notes,
                user.id,
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(
                "Bulk attendance stopped at entry %d of %d by a database error; %d committed",
                index, len(entries), len(results),
            )
            raise BulkAbortError(
                StorageError(f"Attendance for student {entry.student_id} could not be saved"),
                failed_index=index,
                committed=len(results),
                results=list(results),
            ) from e
        except ServiceError as e:
            logger.warning(
                "Bulk attendance stopped at entry %d of %d (%s: %s); %d committed",
                index, len(entries), e.kind, e.message, len(results),
            )
            raise BulkAbortError(e, failed_index=index, committed=len(results), results=list(results))
        results.append(BulkResultItem(action=upserted.action, record=_record_response(upserted.record, student)))

    logger.info("Bulk attendance by user %s: %d entries processed", user.id, len(results))
    return AttendanceBulkResponse(
        message="Attendance records processed successfully",
        results=results,
        total=len(results),
    )


# ----- Single records -----
async def _get_authorized_record(
    db: AsyncSession,
    user: CurrentUser,
    record_id: UUID,
    gate: Optional[AuthorizationGate],
    verb: str,
) -> AttendanceRecord:
    record = await AttendanceStore(db).get(record_id)
    await _authorize_class(db, user, record.class_id, gate or AuthorizationGate(db), verb)
    return record


async def get_attendance_record(
    db: AsyncSession,
    user: CurrentUser,
    record_id: UUID,
    gate: Optional[AuthorizationGate] = None,
) -> AttendanceRecordResponse:
    record = await _get_authorized_record(db, user, record_id, gate, "view")
    student = await StudentDirectory(db).get(record.student_id)
    return _record_response(record, student)


async def update_attendance_record(
    db: AsyncSession,
    user: CurrentUser,
    record_id: UUID,
    fields: Mapping[str, Any],
    gate: Optional[AuthorizationGate] = None,
) -> AttendanceRecordResponse:
    """Change status and/or notes of one record; the caller becomes marked_by."""
    await _get_authorized_record(db, user, record_id, gate, "update")
    record = await AttendanceStore(db).update(record_id, dict(fields), user.id)
    student = await StudentDirectory(db).get(record.student_id)
    return _record_response(record, student)


async def delete_attendance_record(
    db: AsyncSession,
    user: CurrentUser,
    record_id: UUID,
    gate: Optional[AuthorizationGate] = None,
) -> None:
    await _get_authorized_record(db, user, record_id, gate, "delete")
    await AttendanceStore(db).delete(record_id)


# ----- Summary -----
def summarize_records(
    records: Iterable[AttendanceRecord],
    students: Dict[UUID, StudentInfo],
) -> List[StudentAttendanceSummary]:
    """Per-student status counts. Students without records in the input do not appear."""
    stats: Dict[UUID, StudentAttendanceSummary] = {}
    for record in records:
        entry = stats.get(record.student_id)
        if entry is None:
            student = students.get(record.student_id) or StudentInfo(id=record.student_id)
            entry = StudentAttendanceSummary(student=student)
            stats[record.student_id] = entry
        entry.total += 1
        setattr(entry, record.status, getattr(entry, record.status) + 1)
    return list(stats.values())


def status_totals(summary: Iterable[StudentAttendanceSummary]) -> StatusTotals:
    totals = StatusTotals()
    for s in summary:
        totals.present += s.present
        totals.absent += s.absent
        totals.late += s.late
        totals.excused += s.excused
    return totals


async def get_attendance_summary(
    db: AsyncSession,
    user: CurrentUser,
    class_id: UUID,
    start_day: Optional[DayLike] = None,
    end_day: Optional[DayLike] = None,
    timeframe: Optional[str] = None,
    now: Optional[Now] = None,
    gate: Optional[AuthorizationGate] = None,
) -> AttendanceSummaryResponse:
    """
    Per-student counts for a class between start_day and end_day, both inclusive.
    Without bounds (and without a timeframe) the whole history is summarized.
    """
    school_class = await _authorize_class(db, user, class_id, gate or AuthorizationGate(db), "view")
    date_range = resolve_requested_range(start_day, end_day, timeframe, now)
    start = date_range.start_date if date_range else None
    end = date_range.end_date if date_range else None
    logger.debug("Attendance summary for class %s from %s to %s", class_id, start, end)

    records = await AttendanceStore(db).find_range(class_id, start, end)
    students = await StudentDirectory(db).get_many(r.student_id for r in records)
    summary = summarize_records(records, students)
    return AttendanceSummaryResponse(
        class_info=school_class,
        start_date=start,
        end_date=end,
        timeframe=date_range.timeframe if date_range else None,
        summary=summary,
        totals=status_totals(summary),
        total_records=len(records),
    )


async def get_attendance_report(
    db: AsyncSession,
    user: CurrentUser,
    class_id: UUID,
    status: str,
    start_day: Optional[DayLike] = None,
    end_day: Optional[DayLike] = None,
    timeframe: Optional[str] = None,
    now: Optional[Now] = None,
    gate: Optional[AuthorizationGate] = None,
) -> AttendanceReport:
    """Report table for one status. Without explicit days or timeframe the range is today."""
    status_value = validate_status(status)
    date_range = resolve_requested_range(start_day, end_day, timeframe, now)
    if date_range is None:
        date_range = resolve_date_range(None, now or reference_now())
    summary = await get_attendance_summary(
        db, user, class_id, date_range.start_date, date_range.end_date, gate=gate
    )
    return project_report(summary.summary, status_value, date_range)
