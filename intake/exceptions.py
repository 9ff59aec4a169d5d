"""
Error taxonomy for the intake service.

Services raise these; the FastAPI handlers in intake.main turn each class
into exactly one HTTP status and a user-visible message.
"""

from typing import Any, Optional


class IntakeError(Exception):
    """Base class for every error the application raises on purpose."""

    status_code = 500
    default_message = "Error: request failed"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class ValidationError(IntakeError):
    """Missing required field, malformed plate/id. Raised before any network call."""

    status_code = 400
    default_message = "Error: invalid input"


class NotAuthenticatedError(IntakeError):
    status_code = 401
    default_message = "Error: not authenticated"


class PermissionDeniedError(IntakeError):
    """The session lacks the capability the operation requires."""

    status_code = 403
    default_message = "Error: permission denied"


class NotFoundError(IntakeError):
    status_code = 404
    default_message = "Error: record not found"


class ConflictError(IntakeError):
    """Uniqueness violation (tax id, username, email) or a delete guard."""

    status_code = 409
    default_message = "Error: conflicting record"


class InvalidTransitionError(IntakeError):
    """The record is not in the source state the transition requires."""

    status_code = 409
    default_message = "Error: status transition not allowed"


class RecordLockedError(InvalidTransitionError):
    """The record reached a terminal status and is read-only."""

    status_code = 409
    default_message = "Error: record is locked"


class MutationInProgressError(IntakeError):
    """A mutation for the same entity is still pending."""

    status_code = 409
    default_message = "Error: another change to this record is in progress"


class StorageError(IntakeError):
    """Object storage write failed; nothing was persisted."""

    status_code = 502
    default_message = "Error: photo storage failed"


class ExternalServiceError(IntakeError):
    """The external service-order system failed or is not configured."""

    status_code = 502
    default_message = "Error: service-order system unavailable"


class PartialUpdateError(ExternalServiceError):
    """
    The photo was uploaded but the record update failed.
    The uploaded object is left in place; its path and URL travel in details.
    """

    default_message = "Error: photo uploaded but the service order was not updated"


class StatusRejectedError(ExternalServiceError):
    """The external store rejected a status value (enum drift)."""

    default_message = "Error: status value rejected by the service-order system"

    def __init__(self, attempted: str, valid_statuses: Optional[list[str]] = None,
                 message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Error: status '{attempted}' rejected by the service-order system",
            attempted=attempted,
            valid_statuses=valid_statuses or [],
        )
        self.attempted = attempted
        self.valid_statuses = valid_statuses or []
