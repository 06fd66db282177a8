"""
Domain errors raised by the enrollment, progress, quiz and certificate services.

Each error carries the HTTP status the API layer responds with and a stable
machine-readable `code`. Conflict-type errors (409) are idempotency guards:
the caller already did the thing and can show "you already did this".
"""

from typing import Optional


class LearningError(Exception):
    status_code = 500
    code = "learning_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class AccessDenied(LearningError):
    """Access denied."""
    status_code = 403
    code = "access_denied"


class NotFound(LearningError):
    """Not found."""
    status_code = 404
    code = "not_found"


class ValidationError(LearningError):
    """Invalid request."""
    status_code = 400
    code = "validation_error"


class ConflictError(LearningError):
    status_code = 409
    code = "conflict"


class AlreadyEnrolled(ConflictError):
    """Already enrolled in this course."""
    code = "already_enrolled"


class AlreadySubmitted(ConflictError):
    """Quiz attempt already submitted."""
    code = "already_submitted"


class AlreadyCompleted(ConflictError):
    """Already completed."""
    code = "already_completed"


class InvalidState(ConflictError):
    """Operation not allowed in the current state."""
    code = "invalid_state"


class AttemptLimitReached(ConflictError):
    """Maximum number of quiz attempts reached."""
    code = "attempt_limit_reached"


class ExternalServiceError(LearningError):
    """External service unavailable."""
    status_code = 502
    code = "external_service_error"
