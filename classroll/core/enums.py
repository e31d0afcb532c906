from enum import Enum


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class Timeframe(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class UserRole(str, Enum):
    TEACHER = "teacher"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class UpsertAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class ReportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    XLSX = "xlsx"
