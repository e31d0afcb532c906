from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "service_error"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_detail(self) -> Dict[str, Any]:
        """Body for HTTPException.detail: stable kind plus human-readable message."""
        return {"kind": self.kind, "message": self.message}


class NotFoundError(ServiceError):
    """Class, student or attendance record does not exist."""

    kind = "not_found"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ForbiddenError(ServiceError):
    """Caller neither teaches the class nor holds an override role."""

    kind = "forbidden"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class ValidationError(ServiceError):
    """Malformed day, unknown status, or student not enrolled in the class."""

    kind = "validation_error"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    """Uniqueness race at the storage layer that retries could not settle."""

    kind = "conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class StorageError(ServiceError):
    """The database failed a write (lost connection, stale row, ...)."""

    kind = "storage_error"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class BulkAbortError(ServiceError):
    """
    A bulk submission stopped at `failed_index`.

    Entries before it stay committed; `committed` says how many. Kind and status
    code are those of the underlying error so clients can branch on them.
    """

    def __init__(
        self,
        cause: ServiceError,
        failed_index: int,
        committed: int,
        results: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(cause.message, cause.status_code)
        self.kind = cause.kind
        self.cause = cause
        self.failed_index = failed_index
        self.committed = committed
        self.results = results or []

    @property
    def partial(self) -> bool:
        return self.committed > 0

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update(
            failed_index=self.failed_index,
            committed=self.committed,
            partial=self.partial,
            results=jsonable_encoder(self.results),
        )
        return detail
