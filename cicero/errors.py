"""Custom exception classes for the application."""

from __future__ import annotations


class AppError(Exception):
    """Base application error class."""

    code = "internal"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class UnauthenticatedError(AppError):
    """Raised when an operation needs a signed-in user and there is none."""

    code = "unauthenticated"

    def __init__(self, message="User must be authenticated."):
        """Initialize the error."""
        super().__init__(message, 401)


class AuthError(UnauthenticatedError):
    """Raised when signing in fails; the message is safe to show to users."""

    def __init__(self, message, reason=None):
        """Initialize the error."""
        super().__init__(message)
        self.reason = reason


class ValidationError(AppError):
    """Raised when user input fails validation."""

    code = "invalid-argument"

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    code = "not-found"

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    code = "already-exists"

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class PermissionDeniedError(AppError):
    """Raised when a role or ownership precondition is violated."""

    code = "permission-denied"

    def __init__(self, message="You do not have permission to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class InternalError(AppError):
    """Raised for unclassified backend failures."""

    code = "internal"

    def __init__(self, message="An unexpected error occurred."):
        """Initialize the error."""
        super().__init__(message, 500)


class DeadlineExceededError(InternalError):
    """Raised when a remote request does not finish in time."""

    code = "deadline-exceeded"

    def __init__(self, message="The request timed out."):
        """Initialize the error."""
        super().__init__(message)


class DocumentDecodeError(InternalError):
    """Raised when a stored document is missing a required field."""

    def __init__(self, path, field):
        """Initialize the error."""
        super().__init__(f"Document {path} is missing required field '{field}'.")
        self.path = path
        self.field = field


class AggregatedError(AppError):
    """One or more sub-operations of a batch failed."""

    code = "aggregated"

    def __init__(self, errors, message=None):
        """Initialize the error with the list of underlying failures."""
        self.errors = list(errors)
        if message is None:
            details = "; ".join(str(e) for e in self.errors)
            message = f"{len(self.errors)} operation(s) failed: {details}"
        super().__init__(message, 500)


class DegradedStateError(AppError):
    """A multi-step operation stopped part way and left partial state behind."""

    code = "degraded-state"

    def __init__(self, group_id, step, cause=None):
        """Initialize the error."""
        super().__init__(
            f"Group {group_id} was created but '{step}' failed: {cause}", 500
        )
        self.group_id = group_id
        self.step = step
        self.cause = cause


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        UnauthenticatedError,
        ValidationError,
        NotFoundError,
        DuplicateResourceError,
        PermissionDeniedError,
        InternalError,
        DeadlineExceededError,
    )
}

USER_MESSAGES = {
    "unauthenticated": "Please sign in and try again.",
    "invalid-argument": "Please check the details you entered.",
    "not-found": "That group doesn't exist anymore. Double-check the group ID.",
    "already-exists": "You're already a member of this group.",
    "permission-denied": "You don't have permission to do that.",
    "deadline-exceeded": "This is taking too long. Check your connection and retry.",
    "aggregated": "Some information couldn't be loaded. Pull to refresh.",
    "degraded-state": "The group was only partly set up. Please try again.",
}
GENERIC_MESSAGE = "Hmm, something went wrong. Could you try again?"


def user_message(error):
    """Map an error to a short, user-facing message.

    Validation, permission and sign-in messages are written for users and
    pass through unchanged; everything else is keyed off the error kind, never
    the backend text.
    """
    if isinstance(error, (ValidationError, PermissionDeniedError, AuthError)):
        return error.message
    if isinstance(error, AppError):
        return USER_MESSAGES.get(error.code, GENERIC_MESSAGE)
    return GENERIC_MESSAGE
