"""
Class-level authorization for attendance.

A user may read or write a class's attendance when they teach the class, or when
their role is one of ADMIN_OVERRIDE_ROLES. Every attendance operation goes through
AuthorizationGate instead of comparing roles inline.
"""

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classroll.auth.schemas import CurrentUser
from classroll.core.config import settings
from classroll.core.models import SchoolClass


class AuthorizationGate:
    def __init__(self, db: AsyncSession, override_roles: Optional[Iterable[str]] = None) -> None:
        self.db = db
        if override_roles is None:
            override_roles = settings.admin_override_role_list
        self.override_roles = frozenset(override_roles)

    def is_admin_override(self, user: CurrentUser) -> bool:
        return user.role in self.override_roles

    async def owns_class(self, user: CurrentUser, class_id: UUID) -> bool:
        """True if the user is the class's assigned teacher."""
        school_class = await self.db.get(SchoolClass, class_id)
        if not school_class or school_class.teacher_id is None:
            return False
        return school_class.teacher_id == user.id

    async def can_access_class(self, user: CurrentUser, class_id: UUID) -> bool:
        if self.is_admin_override(user):
            return True
        return await self.owns_class(user, class_id)
