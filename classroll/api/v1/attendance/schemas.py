from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from classroll.core.schemas import ClassInfo, StudentInfo


# ----- Date ranges -----
class DateRange(BaseModel):
    """Inclusive calendar-day range. Serializes as ISO dates, never timestamps."""

    start_date: date
    end_date: date
    timeframe: Optional[str] = None


class DateRangeResponse(DateRange):
    label: str
    timeframe_label: str


# ----- Records -----
class AttendanceEntry(BaseModel):
    """One roster line of a bulk submission. Day and status are validated by the service."""

    class_id: UUID
    student_id: UUID
    date: str = Field(..., description="Calendar day, YYYY-MM-DD")
    status: str = Field(..., description="present, absent, late, excused")
    notes: Optional[str] = None


class AttendanceBulkRequest(BaseModel):
    records: List[AttendanceEntry] = Field(default_factory=list)


class AttendanceRecordUpdate(BaseModel):
    """Partial update of a single record. Omitted fields are left unchanged."""

    status: Optional[str] = None
    notes: Optional[str] = None


class AttendanceRecordResponse(BaseModel):
    """Single attendance record with the student's display info."""

    id: UUID
    class_id: UUID
    student_id: UUID
    student: Optional[StudentInfo] = None
    date: date
    display_date: str
    status: str
    notes: Optional[str] = None
    marked_by: UUID
    created_at: datetime
    updated_at: datetime


class BulkResultItem(BaseModel):
    action: str  # created | updated
    record: AttendanceRecordResponse


class AttendanceBulkResponse(BaseModel):
    message: str
    results: List[BulkResultItem]
    total: int


class AttendanceUpdateResponse(BaseModel):
    message: str
    attendance: AttendanceRecordResponse


class MessageResponse(BaseModel):
    message: str


# ----- Summary -----
class StudentAttendanceSummary(BaseModel):
    """Per-student counts in a range. present + absent + late + excused == total."""

    student: StudentInfo
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0


class StatusTotals(BaseModel):
    """Counts per status summed over all students (summary cards)."""

    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0


class AttendanceSummaryResponse(BaseModel):
    class_info: ClassInfo
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timeframe: Optional[str] = None
    summary: List[StudentAttendanceSummary]
    totals: StatusTotals
    total_records: int


# ----- Report -----
class ReportRow(BaseModel):
    student_id: UUID
    student_name: str
    email: Optional[str] = None
    status_count: int
    total: int
    percentage: float
    percentage_label: str  # e.g. "90.0%"


class AttendanceReport(BaseModel):
    status: str
    status_label: str
    timeframe: Optional[str] = None
    timeframe_label: Optional[str] = None
    start_date: date
    end_date: date
    range_label: str
    rows: List[ReportRow]
    total_students: int
