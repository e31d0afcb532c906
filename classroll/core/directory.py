"""Read-only lookups of classes, students and enrollment used by attendance."""

from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from classroll.core.models import SchoolClass, Student
from classroll.core.schemas import ClassInfo, StudentInfo


class ClassDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, class_id: UUID) -> Optional[ClassInfo]:
        school_class = await self.db.get(SchoolClass, class_id)
        if not school_class:
            return None
        return ClassInfo.model_validate(school_class)


class StudentDirectory:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, student_id: UUID) -> Optional[StudentInfo]:
        student = await self.db.get(Student, student_id)
        if not student:
            return None
        return StudentInfo.model_validate(student)

    async def get_many(self, student_ids: Iterable[UUID]) -> Dict[UUID, StudentInfo]:
        ids = set(student_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Student).where(Student.id.in_(ids)))
        return {s.id: StudentInfo.model_validate(s) for s in result.scalars().all()}


class Roster:
    """Current enrollment: a student belongs to exactly one class at a time."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def is_enrolled(self, student_id: UUID, class_id: UUID) -> bool:
        result = await self.db.execute(
            select(Student.id).where(Student.id == student_id, Student.class_id == class_id)
        )
        return result.scalar_one_or_none() is not None
