"""Project a class summary onto one status for display, CSV and Excel export. Never touches the database."""

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Font

from classroll.core.enums import AttendanceStatus

from .date_range import format_range_label, timeframe_label
from .schemas import AttendanceReport, DateRange, ReportRow, StudentAttendanceSummary
from .store import validate_status


REPORT_HEADERS = ("Student Name", "Email", "Status Count", "Total Classes", "Percentage")
REPORT_SHEET_NAME = "Attendance Report"

STATUS_LABELS = {
    AttendanceStatus.PRESENT.value: "Present",
    AttendanceStatus.ABSENT.value: "Absent",
    AttendanceStatus.LATE.value: "Late",
    AttendanceStatus.EXCUSED.value: "Excused",
}


def percentage(count: int, total: int) -> Decimal:
    """count / total * 100, rounded half-up to one decimal place."""
    if total <= 0:
        return Decimal("0.0")
    return (Decimal(count) * 100 / Decimal(total)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def project_report(
    summary: Iterable[StudentAttendanceSummary],
    status: str,
    date_range: DateRange,
) -> AttendanceReport:
    """
    Rows for students with at least one record of `status`, highest count first.
    Ties are ordered by student id so repeated exports are identical.
    """
    status_value = validate_status(status)
    selected = [s for s in summary if getattr(s, status_value) > 0]
    selected.sort(key=lambda s: (-getattr(s, status_value), str(s.student.id)))

    rows: List[ReportRow] = []
    for s in selected:
        count = getattr(s, status_value)
        pct = percentage(count, s.total)
        rows.append(ReportRow(
            student_id=s.student.id,
            student_name=s.student.full_name,
            email=s.student.email,
            status_count=count,
            total=s.total,
            percentage=float(pct),
            percentage_label=f"{pct}%",
        ))

    return AttendanceReport(
        status=status_value,
        status_label=STATUS_LABELS[status_value],
        timeframe=date_range.timeframe,
        timeframe_label=timeframe_label(date_range.timeframe) if date_range.timeframe else None,
        start_date=date_range.start_date,
        end_date=date_range.end_date,
        range_label=format_range_label(date_range),
        rows=rows,
        total_students=len(rows),
    )


def _table(report: AttendanceReport) -> List[list]:
    return [
        [row.student_name, row.email or "N/A", row.status_count, row.total, row.percentage_label]
        for row in report.rows
    ]


def render_csv(report: AttendanceReport) -> str:
    """Comma-delimited, every field quoted, one line per student."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(REPORT_HEADERS)
    writer.writerows(_table(report))
    return buf.getvalue()


def render_xlsx(report: AttendanceReport) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = REPORT_SHEET_NAME
    ws.append([f"{report.status_label} - {report.range_label}"])
    ws["A1"].font = Font(bold=True)
    ws.append(list(REPORT_HEADERS))
    for cell in ws[2]:
        cell.font = Font(bold=True)
    for row in _table(report):
        ws.append(row)

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def report_filename(report: AttendanceReport, ext: str) -> str:
    """attendance_report_<status>_<timeframe>.<ext>; explicit ranges use the ISO bounds instead of a timeframe."""
    period = report.timeframe or f"{report.start_date.isoformat()}_{report.end_date.isoformat()}"
    return f"attendance_report_{report.status}_{period}.{ext}"
