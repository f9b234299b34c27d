"""Error taxonomy for the OAuth relay, each carrying an HTTP status."""

from http import HTTPStatus
from typing import Any

from starlette.responses import JSONResponse

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_INTERNAL_ERROR = 500
HTTP_BAD_GATEWAY = 502

REDACT_VISIBLE_CHARS = 4
UNKNOWN_ERROR_MESSAGE = "Unknown server error."
KEY_FORMAT_ERROR_MESSAGE = (
    "Server key material is misconfigured. Developers should check server logs."
)


def redact(secret: str) -> str:
    """Keep the first 4 characters of a secret and elide the rest."""
    return secret[:REDACT_VISIBLE_CHARS] + "..."


class RelayError(Exception):
    """Base error; the message is safe to show to the caller."""

    status_code: int = HTTP_INTERNAL_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def public_message(self) -> str:
        return self.message

    def to_response(self) -> JSONResponse:
        """Render as ``{"error": public_message}`` with the carried status."""
        return JSONResponse(
            {"error": self.public_message}, status_code=self.status_code
        )


class ClientInputError(RelayError):
    """A required request parameter is missing or unusable."""

    status_code = HTTP_BAD_REQUEST


class AuthExpiredError(RelayError):
    """A state or session token is past its expiration."""

    status_code = HTTP_UNAUTHORIZED


class UpstreamError(RelayError):
    """The identity provider answered with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(body or HTTPStatus(HTTP_BAD_GATEWAY).phrase)
        self.upstream_status = status
        self.body = body
        self.status_code = _passthrough_status(status)


class ValidationError(RelayError):
    """A decoded payload does not have the expected shape, or was tampered with."""

    status_code = HTTP_INTERNAL_ERROR

    def __init__(
        self, message: str, errors: list[dict[str, Any]] | None = None
    ) -> None:
        super().__init__(message)
        self.errors = errors or []


class KeyFormatError(RelayError):
    """Key material on disk is missing a counterpart or is not a PEM key.

    The message names server file paths, so it only goes to the log.
    """

    status_code = HTTP_INTERNAL_ERROR

    @property
    def public_message(self) -> str:
        return KEY_FORMAT_ERROR_MESSAGE


class UnknownError(RelayError):
    """Wraps any unexpected cause.

    The message is a diagnostic for the server log; callers only see
    ``public_message``.
    """

    status_code = HTTP_INTERNAL_ERROR

    def __init__(
        self, message: str, *, public_message: str = UNKNOWN_ERROR_MESSAGE
    ) -> None:
        super().__init__(message)
        self._public_message = public_message

    @property
    def public_message(self) -> str:
        return self._public_message


def _passthrough_status(status: int) -> int:
    """Forward provider error statuses; anything that is not 4xx/5xx becomes 502."""
    try:
        HTTPStatus(status)
    except ValueError:
        return HTTP_BAD_GATEWAY
    if HTTP_BAD_REQUEST <= status < 600:
        return status
    return HTTP_BAD_GATEWAY
