"""Attendance API router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from classroll.auth.dependencies import get_current_user
from classroll.auth.schemas import CurrentUser
from classroll.core.enums import ReportFormat
from classroll.core.exceptions import ServiceError
from classroll.core.timeutils import reference_now
from classroll.db.session import get_db

from . import service
from .date_range import format_range_label, resolve_date_range, timeframe_label
from .report import render_csv, render_xlsx, report_filename
from .schemas import (
    AttendanceBulkRequest,
    AttendanceBulkResponse,
    AttendanceRecordResponse,
    AttendanceRecordUpdate,
    AttendanceSummaryResponse,
    AttendanceUpdateResponse,
    DateRangeResponse,
    MessageResponse,
)

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


# ----- Timeframes -----
@router.get("/date-range", response_model=DateRangeResponse)
async def get_date_range(
    timeframe: Optional[str] = Query("today", description="today, week, month, year"),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Resolve a timeframe against the server's reference clock."""
    date_range = resolve_date_range(timeframe, reference_now())
    return DateRangeResponse(
        **date_range.model_dump(),
        label=format_range_label(date_range),
        timeframe_label=timeframe_label(date_range.timeframe),
    )


# ----- Class views -----
@router.get("/class/{class_id}/date/{day}", response_model=List[AttendanceRecordResponse])
async def get_attendance_for_day(
    class_id: UUID,
    day: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """All records of a class on one calendar day (YYYY-MM-DD)."""
    try:
        return await service.get_attendance_for_day(db, current_user, class_id, day)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/class/{class_id}/range", response_model=List[AttendanceRecordResponse])
async def get_attendance_for_range(
    class_id: UUID,
    start_date: str = Query(..., description="First day, YYYY-MM-DD (inclusive)"),
    end_date: str = Query(..., description="Last day, YYYY-MM-DD (inclusive)"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.get_attendance_for_range(db, current_user, class_id, start_date, end_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/class/{class_id}/summary", response_model=AttendanceSummaryResponse)
async def get_attendance_summary(
    class_id: UUID,
    start_date: Optional[str] = Query(None, description="First day, YYYY-MM-DD (inclusive)"),
    end_date: Optional[str] = Query(None, description="Last day, YYYY-MM-DD (inclusive)"),
    timeframe: Optional[str] = Query(None, description="today, week, month, year; overrides dates"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Per-student status counts for a class. No dates and no timeframe = whole history."""
    try:
        return await service.get_attendance_summary(
            db,
            current_user,
            class_id,
            start_date,
            end_date,
            timeframe=timeframe,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/class/{class_id}/report")
async def get_attendance_report(
    class_id: UUID,
    status: str = Query(..., description="present, absent, late, excused"),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    timeframe: Optional[str] = Query(None, description="today, week, month, year; overrides dates"),
    export_format: ReportFormat = Query(ReportFormat.JSON, alias="format"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Students with at least one record of `status`, highest count first. CSV / Excel as downloads."""
    try:
        report = await service.get_attendance_report(
            db,
            current_user,
            class_id,
            status,
            start_date,
            end_date,
            timeframe=timeframe,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    if export_format == ReportFormat.CSV:
        return Response(
            content=render_csv(report),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f"attachment; filename={report_filename(report, 'csv')}"},
        )
    if export_format == ReportFormat.XLSX:
        return Response(
            content=render_xlsx(report),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename={report_filename(report, 'xlsx')}"},
        )
    return report


# ----- Bulk -----
@router.post("/bulk", response_model=AttendanceBulkResponse)
async def record_attendance_bulk(
    payload: AttendanceBulkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Create or update attendance for a roster, in order.
    Stops at the first failing entry; earlier entries stay saved (see `committed` in the error detail).
    """
    try:
        return await service.record_attendance_bulk(db, current_user, payload.records)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


# ----- Single records -----
@router.get("/{record_id}", response_model=AttendanceRecordResponse)
async def get_attendance_record(
    record_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return await service.get_attendance_record(db, current_user, record_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.put("/{record_id}", response_model=AttendanceUpdateResponse)
async def update_attendance_record(
    record_id: UUID,
    payload: AttendanceRecordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Update status and/or notes of one record."""
    try:
        record = await service.update_attendance_record(
            db,
            current_user,
            record_id,
            payload.model_dump(exclude_unset=True),
        )
        return {"message": "Attendance updated successfully", "attendance": record}
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{record_id}", response_model=MessageResponse)
async def delete_attendance_record(
    record_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        await service.delete_attendance_record(db, current_user, record_id)
        return {"message": "Attendance record deleted successfully"}
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
