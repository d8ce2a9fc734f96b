"""Core exceptions for certflow fraud detection and alert review."""

from uuid import UUID

from certflow.utils.exceptions import CertflowError


class TransientStoreError(CertflowError):
    """Raised when a backing store could not be read or written.

    The verification path swallows this error; administrator actions
    surface it to the caller as a retryable failure.

    Attributes:
        operation: The store operation that failed (e.g., "count_since")
        retryable: Whether retrying the operation may succeed
    """

    def __init__(self, message: str, operation: str, retryable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.retryable = retryable

    def __str__(self) -> str:
        return f"TransientStoreError({self.operation}): {self.args[0]}"


class InvalidStatusError(CertflowError):
    """Raised when an alert resolution status is not an accepted value.

    Attributes:
        status: The status that was requested
        allowed: The statuses that would have been accepted
    """

    def __init__(self, status: str, allowed: list[str]):
        super().__init__(
            f"Invalid status '{status}'. Must be one of: {', '.join(allowed)}"
        )
        self.status = status
        self.allowed = allowed

    def __str__(self) -> str:
        return f"InvalidStatusError: {self.args[0]}"


class InvalidTransitionError(CertflowError):
    """Raised when an alert cannot move from its current status.

    Attributes:
        alert_id: The alert being resolved
        current: The alert's current status
        requested: The status that was requested
    """

    def __init__(self, alert_id: UUID | str, current: str, requested: str):
        super().__init__(
            f"Alert {alert_id} is already {current} and cannot become {requested}"
        )
        self.alert_id = alert_id
        self.current = current
        self.requested = requested

    def __str__(self) -> str:
        return f"InvalidTransitionError: {self.args[0]}"


class NotFoundError(CertflowError):
    """Raised when a referenced record does not exist.

    Attributes:
        resource: The kind of record (e.g., "credential", "alert")
        identifier: The identifier that was looked up
    """

    def __init__(self, resource: str, identifier: UUID | str):
        super().__init__(f"{resource.capitalize()} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.args[0]}"


class CredentialNotFoundError(NotFoundError):
    """Raised when a credential does not exist."""

    def __init__(self, credential_id: str):
        super().__init__("credential", credential_id)
        self.credential_id = credential_id


class AlertNotFoundError(NotFoundError):
    """Raised when a fraud alert does not exist."""

    def __init__(self, alert_id: UUID | str):
        super().__init__("alert", alert_id)
        self.alert_id = alert_id


class AuthenticationError(CertflowError):
    """Raised when a request carries no valid credentials.

    Attributes:
        reason: The specific reason authentication failed
    """

    def __init__(self, reason: str = "Authentication failed"):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"AuthenticationError: {self.args[0]}"


class AuthorizationError(CertflowError):
    """Raised when an authenticated caller lacks the required authority.

    Attributes:
        required: The authority the operation requires
    """

    def __init__(self, required: str):
        super().__init__(f"Operation requires {required} authority")
        self.required = required

    def __str__(self) -> str:
        return f"AuthorizationError: {self.args[0]}"


class RateLimitExceededError(CertflowError):
    """Raised when a client exceeds the public verification rate limit.

    Attributes:
        limit: Requests allowed per window
        retry_after: Seconds until the client may retry
    """

    def __init__(self, limit: int, retry_after: int):
        super().__init__("Too many verification attempts, please wait before retrying")
        self.limit = limit
        self.retry_after = retry_after

    def __str__(self) -> str:
        return f"RateLimitExceededError: {self.args[0]}"
