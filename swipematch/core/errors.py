"""
Error taxonomy for the matching and relationship protocols.

Every error carries a ``user_message`` that the surrounding application can
show as-is. Only ``TransientStoreFailure`` is worth retrying.
"""


class SwipeMatchError(Exception):
    """Base class for all protocol errors."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, user_message: str | None = None):
        super().__init__(message or self.default_message)
        self.user_message = user_message or message or self.default_message


class InvalidOperation(SwipeMatchError):
    """Self-requests, unknown categories, resets between unconnected users."""

    default_message = "This action is not allowed."


class AlreadyExists(SwipeMatchError):
    """Duplicate pending request, existing connection or taken username."""

    default_message = "This already exists."


class NotFound(SwipeMatchError):
    """A request, user or connection could not be found."""

    default_message = "Not found."


class TransientStoreFailure(SwipeMatchError):
    """A store call failed. Safe to retry, every mutating step is idempotent."""

    default_message = "Temporary storage problem. Please try again."
