"""Error types raised by tracker services."""

from __future__ import annotations


class TrackerError(RuntimeError):
    """Base class for errors surfaced to API callers."""

    def __init__(
        self,
        message: str,
        *,
        owner_id: str | None = None,
        entity_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.owner_id = owner_id
        self.entity_id = entity_id

    def to_dict(self) -> dict[str, str | None]:
        return {
            "message": self.message,
            "owner_id": self.owner_id,
            "entity_id": self.entity_id,
        }


class TrackerValidationError(TrackerError):
    """Raised when a request is missing data or violates a state rule."""


class NotFoundError(TrackerError):
    """Raised when an id does not resolve for the requesting owner."""


class ConflictError(TrackerError):
    """Raised when a unique key (owner, name, ...) already exists."""


class CollaboratorUnavailableError(TrackerError):
    """Raised when an optional collaborator (calendar, cache) cannot be used."""


class CalendarNotConnectedError(CollaboratorUnavailableError):
    """Raised when the owner has not authorized calendar access."""


__all__ = [
    "TrackerError",
    "TrackerValidationError",
    "NotFoundError",
    "ConflictError",
    "CollaboratorUnavailableError",
    "CalendarNotConnectedError",
]
