from classroll.auth.models import User
from classroll.core.models.attendance_record import AttendanceRecord
from classroll.core.models.class_model import SchoolClass
from classroll.core.models.student import Student

__all__ = [
    "AttendanceRecord",
    "SchoolClass",
    "Student",
    "User",
]
