"""Client-side error taxonomy.

Every failure of a chat API call surfaces as a ``ChatClientError``:

- ``CommandValidationError``: the command should never have been sent.
- ``TransportError``: no usable response (connection, timeout, bad body).
- ``ServerError``: the server answered with a structured error.
"""

from __future__ import annotations

from typing import Optional

from switchchat.models.errors import ErrorField, ErrorResponse

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


class ChatClientError(Exception):
    """Base class for errors surfaced to the UI as a single message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CommandValidationError(ChatClientError):
    """Malformed command: empty content, no model, or unknown model."""


class SendInProgressError(ChatClientError):
    """A send was started while another one is still in flight."""

    def __init__(self, message: str = "A message is already being sent") -> None:
        super().__init__(message)


class TransportError(ChatClientError):
    """The request never produced a usable response."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(message)


class ServerError(ChatClientError):
    """Structured error reported by the server."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[list[ErrorField]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []


class UnauthorizedError(ServerError):
    """401: missing session or invalid provider key."""


class PaymentRequiredError(ServerError):
    """402: provider credits exhausted."""


class NotFoundError(ServerError):
    """404: conversation, message or API key does not exist."""


class ProviderUnavailableError(ServerError):
    """502/503/529: upstream model provider failed or is overloaded."""


_STATUS_ERRORS: dict[int, type[ServerError]] = {
    401: UnauthorizedError,
    402: PaymentRequiredError,
    404: NotFoundError,
    502: ProviderUnavailableError,
    503: ProviderUnavailableError,
    529: ProviderUnavailableError,
}


def server_error_from_response(status_code: int, body: Optional[dict]) -> ServerError:
    """Build the matching ``ServerError`` subclass from an error body.

    Bodies that do not follow the ``{statusCode, message, errors?}`` shape
    fall back to a generic message for the HTTP status.
    """
    error_cls = _STATUS_ERRORS.get(status_code, ServerError)
    if body is not None:
        try:
            parsed = ErrorResponse.model_validate(body)
        except ValueError:
            parsed = None
        if parsed is not None:
            return error_cls(status_code, parsed.message, parsed.errors)
    return error_cls(status_code, f"Request failed with status {status_code}")
