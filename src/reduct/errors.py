"""Exception hierarchy for Reduct Storage client errors.

Server failures are mapped from the HTTP status code of the response,
client-side failures (refresh, body streaming, malformed responses) get
their own types so callers can tell them apart.
"""

from typing import Optional

import httpx

ERROR_HEADER = 'x-reduct-error'


class ReductError(Exception):
    """Base exception for Reduct Storage client errors.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status code, None when no response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f'[{status_code}] {message}')


class RequestError(ReductError):
    """Server returned a non-success status."""

    pass


class UnauthorizedError(RequestError):
    """Request is not authenticated or the token has expired."""

    pass


class ForbiddenError(RequestError):
    """Token lacks permission for the requested operation."""

    pass


class NotFoundError(RequestError):
    """Requested bucket, entry or record does not exist."""

    pass


class ConflictError(RequestError):
    """Resource already exists (e.g. bucket with the same name)."""

    pass


class AuthRefreshError(ReductError):
    """Refreshing the access token failed.

    Attributes:
        original: The authorization error that triggered the refresh
    """

    def __init__(self, message: str, original: Optional[ReductError] = None, status_code: Optional[int] = None):
        if status_code is None and original is not None:
            status_code = original.status_code
        super().__init__(message, status_code)
        self.original = original


class StreamError(ReductError):
    """Reading a record body failed mid-consumption."""

    pass


class ProtocolError(ReductError):
    """Response is missing data the client requires (e.g. record headers)."""

    pass


STATUS_CODE_MAP = {
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
}


def map_error_response(status_code: int, message: str) -> RequestError:
    """Map an error status code to the appropriate exception type.

    Args:
        status_code: HTTP status code
        message: Error message reported by the server

    Returns:
        RequestError subclass instance for the status code

    Example:
        >>> exc = map_error_response(404, 'Bucket does not exist')
        >>> isinstance(exc, NotFoundError)
        True
    """
    error_class = STATUS_CODE_MAP.get(status_code, RequestError)
    return error_class(message, status_code)


def error_from_response(response: httpx.Response) -> RequestError:
    """Build a typed error from a (fully read) error response.

    The message is taken from the x-reduct-error header, then from the
    JSON 'detail' field, then from the raw body text.
    """
    message = response.headers.get(ERROR_HEADER)
    if not message:
        try:
            message = response.json().get('detail')
        except (ValueError, AttributeError):
            message = None
    if not message:
        message = response.text or response.reason_phrase or 'Unknown error'
    return map_error_response(response.status_code, message)
