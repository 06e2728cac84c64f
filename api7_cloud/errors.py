"""Client error types for API7 Cloud interactions.

Every error raised by this package derives from CloudClientError and
carries a short context tag as the prefix of its message.
"""

from __future__ import annotations


class CloudClientError(Exception):
    """Base error for API7 Cloud client failures."""


class CloudNetworkError(CloudClientError):
    """Network connection to API7 Cloud failed (DNS, connect, TLS)."""


class CloudTimeout(CloudNetworkError):
    """Timeout while communicating with API7 Cloud."""


class CloudServerError(CloudClientError):
    """API7 Cloud answered with a 5xx status and a non-enveloped body."""

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"status code: {status}, message: {body}")
        self.status = status
        self.body = body


class CloudAPIError(CloudClientError):
    """API7 Cloud rejected the request with an enveloped error."""

    def __init__(self, status: int, code: int, message: str, reason: str) -> None:
        super().__init__(
            f"status code: {status}, error code: {code}, "
            f"error reason: {message}, details: {reason}"
        )
        self.status = status
        self.code = code
        self.message = message
        self.reason = reason


class CloudDecodeError(CloudClientError):
    """Response envelope or payload could not be decoded."""

    def __init__(self, step: str, detail: str) -> None:
        super().__init__(f"{step}: {detail}")
        self.step = step


class CloudIterationError(CloudClientError):
    """Fetching a page of a list endpoint failed.

    The iterator that raised it is left untouched, so the same ``next()``
    call can be retried.
    """

    def __init__(self, tag: str, cause: CloudClientError) -> None:
        super().__init__(f"{tag}: {cause}")
        self.cause = cause


class CloudEmptyTokenError(CloudClientError):
    """No access token was configured or the token file holds none."""
