"""
Error taxonomy for the booking engine.

Every error is raised before any write is committed, carries a
human-readable ``message`` that the UI shows verbatim, and keeps the
structured context (entity, id, field, limits) as attributes.
``status_code`` is what the HTTP layer answers with.
"""

from __future__ import annotations

from typing import Optional


class CarpoolError(Exception):
    """Base class for every caller-recoverable domain failure."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CarpoolError):
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


class NotFoundError(CarpoolError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class AuthenticationError(CarpoolError):
    status_code = 401


class AuthorizationError(CarpoolError):
    status_code = 403

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.actor_id = actor_id
        super().__init__(message)


class StateError(CarpoolError):
    status_code = 409

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        entity_id: Optional[str] = None,
        current: Optional[str] = None,
        attempted: Optional[str] = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.attempted = attempted
        super().__init__(message)


class CapacityError(CarpoolError):
    status_code = 409

    def __init__(
        self,
        message: str,
        ride_id: Optional[str] = None,
        requested: Optional[int] = None,
        available: Optional[int] = None,
    ) -> None:
        self.ride_id = ride_id
        self.requested = requested
        self.available = available
        super().__init__(message)


class LockTimeoutError(CarpoolError):
    status_code = 503

    def __init__(self, key: str, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__("The ride is busy, please try again")


class InternalConsistencyError(CarpoolError):
    status_code = 500
