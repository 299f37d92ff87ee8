"""Error taxonomy raised by the cafe core.

Every core operation either returns its result or raises one of these. The
HTTP layer maps them to status codes through ``http_status``.
"""
from http import HTTPStatus


class CafeError(Exception):
    http_status = HTTPStatus.INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(CafeError):
    http_status = HTTPStatus.NOT_FOUND


class Conflict(CafeError):
    http_status = HTTPStatus.CONFLICT


class Unauthorized(CafeError):
    http_status = HTTPStatus.FORBIDDEN


class InvalidCredentials(Unauthorized):
    http_status = HTTPStatus.UNAUTHORIZED


class InvalidInput(CafeError):
    http_status = HTTPStatus.BAD_REQUEST


class StoreError(CafeError):
    """The underlying transaction failed or timed out; state is unchanged."""

    http_status = HTTPStatus.SERVICE_UNAVAILABLE
    retryable = True
