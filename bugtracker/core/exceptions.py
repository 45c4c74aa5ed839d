"""
Application-wide exception hierarchy.

Services raise these types; the app factory registers one error handler
per type so every blueprint maps them to the same HTTP status codes.

Usage:
    from bugtracker.core.exceptions import NotFoundError, InvalidStateError

    raise NotFoundError(resource="Bug", resource_id=42)
    raise InvalidStateError("No updates provided")
"""


class NotFoundError(Exception):
    """Raised when a referenced bug, user or comment does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Bug", "User").
        resource_id: The id that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class InvalidStateError(Exception):
    """Raised when a lifecycle operation cannot be applied to the current state.

    Examples: an update patch with no recognised field, an invalid
    transition input.  Maps to HTTP 400.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(Exception):
    """Raised when a request payload is malformed.

    Distinct from InvalidStateError: the payload itself is wrong (missing
    field, bad enum value, wrong type) before any state is consulted.
    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique field.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class AuthenticationError(Exception):
    """Raised on bad credentials or a missing / invalid access token. Maps to 401."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        self.message = message
        super().__init__(message)


class DispatchError(Exception):
    """Raised by a notifier when a message could not be delivered.

    Never escapes the notification dispatcher: it is logged and the
    triggering mutation stands.
    """

    def __init__(self, kind: str, recipient: str, reason: str) -> None:
        self.kind = kind
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"{kind} notification to {recipient} failed: {reason}")
