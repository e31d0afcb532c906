from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated caller as seen by services."""

    id: UUID
    email: str
    full_name: str
    role: str
