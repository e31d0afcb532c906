from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class ClassInfo(BaseModel):
    """Display information for a class."""

    id: UUID
    class_name: str
    academic_year: Optional[str] = None
    semester: Optional[str] = None
    teacher_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class StudentInfo(BaseModel):
    """Display information for a student."""

    id: UUID
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
