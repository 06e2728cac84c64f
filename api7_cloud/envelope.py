"""Response envelope helpers for the API7 Cloud wire format.

Every API7 Cloud response below status 500 is wrapped as::

    {"payload": ..., "status": {"code": 0, "message": "OK"},
     "error": "...", "warning": "..."}

5xx responses are produced outside the API layer and carry a plain body.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from .errors import CloudAPIError, CloudDecodeError, CloudServerError

T = TypeVar("T")

PayloadDecoder = Callable[[Any], Any]

# Exceptions a payload decoder may raise on a malformed payload.
_DECODE_ERRORS = (ValueError, TypeError, KeyError)


@dataclass(frozen=True)
class Status:
    """Operation status carried by every envelope."""

    code: int = 0
    message: str = ""


@dataclass(frozen=True)
class ResponseEnvelope:
    """Decoded response wrapper.

    Attributes:
        payload: Original payload, absent for errors and empty operations.
        status: Operation status.
        error: Error details, exclusive with payload.
        warning: Optional warning attached by the server.
    """

    payload: Any = None
    status: Status = Status()
    error: str | None = None
    warning: str | None = None

    @classmethod
    def from_json(cls, raw: bytes | str) -> ResponseEnvelope:
        """Parse raw response bytes into an envelope.

        Raises:
            CloudDecodeError: If the body is not a JSON object of the
                envelope shape.
        """
        try:
            data = json.loads(raw)
        except ValueError as err:
            raise CloudDecodeError("decode response body", str(err)) from err
        if not isinstance(data, dict):
            raise CloudDecodeError(
                "decode response body",
                f"expected JSON object, got {type(data).__name__}",
            )

        status_raw = data.get("status") or {}
        if not isinstance(status_raw, dict):
            raise CloudDecodeError("decode response body", "status must be an object")
        try:
            status = Status(
                code=int(status_raw.get("code", 0)),
                message=str(status_raw.get("message", "")),
            )
        except (TypeError, ValueError) as err:
            raise CloudDecodeError("decode response body", str(err)) from err

        return cls(
            payload=data.get("payload"),
            status=status,
            error=data.get("error"),
            warning=data.get("warning"),
        )


def build_envelope(
    payload: Any = None,
    *,
    code: int = 0,
    message: str = "OK",
    error: str | None = None,
    warning: str | None = None,
) -> dict[str, Any]:
    """Build a wire envelope around a payload.

    Args:
        payload: JSON-serializable payload. Omitted from the result when None.
        code: Status code (0 means OK).
        message: Status description.
        error: Optional error details.
        warning: Optional warning message.

    Returns:
        Envelope dict ready for ``json.dumps``.
    """
    envelope: dict[str, Any] = {"status": {"code": code, "message": message}}
    if payload is not None:
        envelope["payload"] = payload
    if error:
        envelope["error"] = error
    if warning:
        envelope["warning"] = warning
    return envelope


def decode_response(
    status: int, body: bytes, decoder: PayloadDecoder | None = None
) -> Any:
    """Classify a raw HTTP response and decode its payload.

    Args:
        status: HTTP status code.
        body: Full response body.
        decoder: Optional callable turning the payload into a result.

    Returns:
        The decoder result, or None when no decoder is supplied.

    Raises:
        CloudServerError: If status is 500 or above.
        CloudDecodeError: If the envelope or the payload is malformed.
        CloudAPIError: If status is anything but 200.
    """
    if status >= 500:
        raise CloudServerError(status, body.decode("utf-8", errors="replace"))

    envelope = ResponseEnvelope.from_json(body)

    if status != 200:
        raise CloudAPIError(
            status,
            envelope.status.code,
            envelope.status.message,
            envelope.error or "",
        )

    if decoder is None:
        return None
    try:
        return decoder(envelope.payload)
    except _DECODE_ERRORS as err:
        raise CloudDecodeError("decode payload to json", str(err)) from err


def json_payload_decoder(factory: Callable[[Mapping[str, Any]], T]) -> Callable[[Any], T]:
    """Adapt a mapping factory (e.g. ``Model.from_dict``) into a payload decoder."""

    def _decode(payload: Any) -> T:
        if not isinstance(payload, Mapping):
            raise TypeError(f"expected JSON object, got {type(payload).__name__}")
        return factory(payload)

    return _decode
