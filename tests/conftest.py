"""Pytest configuration and fixtures for api7_cloud tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from api7_cloud.auth import AccessToken
from api7_cloud.envelope import build_envelope, decode_response
from api7_cloud.errors import CloudClientError


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def token() -> AccessToken:
    return AccessToken(token="test-token")


def create_mock_response(
    status: int = 200,
    json_data: dict[str, Any] | None = None,
    read_data: bytes | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data serialized as the body returned by read()
        read_data: Raw body returned by read(), wins over json_data

    Returns:
        Configured AsyncMock response usable as an async context manager
    """
    response = AsyncMock()
    response.status = status
    response.reason = "OK" if status == 200 else "Error"
    response.headers = {"Content-Type": "application/json"}

    if read_data is None:
        read_data = json.dumps(json_data if json_data is not None else {}).encode()
    response.read.return_value = read_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


@dataclass
class RecordedCall:
    """Arguments of one call made against FakeTransport."""

    method: str
    path: str
    query: dict[str, Any] | None
    body: Any
    headers: dict[str, str] | None


@dataclass
class FakeTransport:
    """Hand-written HttpTransport double.

    Responses are queued as (status, envelope dict) pairs or as exceptions
    and consumed in order; every call is recorded. Payloads go through the
    real envelope codec so decoders see the same values as in production.
    """

    responses: list[tuple[int, dict[str, Any]] | Exception] = field(
        default_factory=lambda: []
    )
    calls: list[RecordedCall] = field(default_factory=lambda: [])

    def respond(self, payload: Any = None, *, status: int = 200) -> None:
        self.responses.append((status, build_envelope(payload)))

    def respond_page(self, items: list[Any], count: int | None = None) -> None:
        self.respond({"list": items, "count": len(items) if count is None else count})

    def fail(self, err: CloudClientError) -> None:
        self.responses.append(err)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        query: Any = None,
        body: Any = None,
        decoder: Any = None,
        headers: Any = None,
    ) -> Any:
        self.calls.append(
            RecordedCall(
                method=method,
                path=path,
                query=dict(query) if query is not None else None,
                body=body,
                headers=dict(headers) if headers is not None else None,
            )
        )
        if not self.responses:
            raise AssertionError(f"unexpected {method} {path}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        status, envelope = response
        return decode_response(status, json.dumps(envelope).encode(), decoder)

    async def send_get_request(self, path: str, **kwargs: Any) -> Any:
        return await self._send("GET", path, **kwargs)

    async def send_post_request(self, path: str, body: Any, **kwargs: Any) -> Any:
        return await self._send("POST", path, body=body, **kwargs)

    async def send_put_request(self, path: str, body: Any, **kwargs: Any) -> Any:
        return await self._send("PUT", path, body=body, **kwargs)

    async def send_patch_request(self, path: str, body: Any, **kwargs: Any) -> Any:
        return await self._send("PATCH", path, body=body, **kwargs)

    async def send_delete_request(self, path: str, **kwargs: Any) -> Any:
        return await self._send("DELETE", path, **kwargs)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()
