"""
Error taxonomy for the booking engine.

Three families are kept apart so callers can tell the user exactly what
went wrong:

1. Input problems (ValidationError, ServiceAreaError, InvalidTransitionError)
   are detected locally and never reach the network layer.
2. Server rejections (ServerRejectedError and its AuthenticationError /
   ConflictError subclasses) carry the HTTP status and the server's message.
3. Transport failures (NetworkError) mean the backend could not be reached.
   MalformedResponseError covers a 2xx answer whose payload cannot be read;
   read paths treat it like an outage.
"""

from typing import Optional


class BookingEngineError(Exception):
    """Base class for every error raised by the engine."""

    user_message = "Something went wrong."


class ValidationError(BookingEngineError):
    """One or more fields failed validation. Raised before any network call."""

    user_message = "Your input was invalid. Please correct the highlighted fields."

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors)) or "<none>"
        super().__init__(f"Validation failed for: {fields}")


class ServiceAreaError(BookingEngineError):
    """The postal code is not covered by any service area."""

    user_message = "Your input was invalid. We don't serve this postal code yet."

    def __init__(self, postal_code: str) -> None:
        self.postal_code = postal_code
        super().__init__(f"Postal code {postal_code!r} is not in a service area")


class InvalidTransitionError(BookingEngineError):
    """A status or step change that is not permitted from the current state."""

    user_message = "Your request was invalid for the booking's current state."

    def __init__(self, current: str, target: str, reason: str) -> None:
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot move from '{current}' to '{target}': {reason}")


class NetworkError(BookingEngineError):
    """The backend could not be reached (transport failure or timeout)."""

    user_message = "We could not reach the server. Please check your connection and try again."


class ServerRejectedError(BookingEngineError):
    """The backend answered with a non-2xx status."""

    user_message = "The server rejected the request."

    def __init__(self, status_code: int, detail: Optional[str] = None) -> None:
        self.status_code = status_code
        self.detail = detail
        message = f"Server rejected the request with status {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class AuthenticationError(ServerRejectedError):
    """401/403 from the backend. The session has been invalidated."""

    user_message = "The server rejected the request. Please sign in again."


class ConflictError(ServerRejectedError):
    """409 from the backend, e.g. the record changed underneath the caller."""

    user_message = "The server rejected the request because the data changed. Please refresh."


class MalformedResponseError(BookingEngineError):
    """The backend answered 2xx but the payload does not have the expected shape."""

    user_message = "The server sent data we could not read. Please try again later."

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Unreadable response from {path}: {detail}")
