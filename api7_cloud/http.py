"""HTTP transport for the API7 Cloud API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Final, Protocol

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from .auth import AccessToken
from .envelope import PayloadDecoder, decode_response
from .errors import CloudNetworkError, CloudTimeout
from .http_trace import TraceCollector
from .ids import IDGenerator, UUIDGenerator

_LOGGER = logging.getLogger(__name__)

REQUEST_ID_HEADER: Final = "X-Request-ID"

# Verbs whose requests never carry a body.
_BODYLESS_METHODS: Final = frozenset({"GET", "DELETE"})

QueryParams = Mapping[str, str | int]
Headers = Mapping[str, str]


class HttpTransport(Protocol):
    """The narrow transport contract resource clients and iterators use."""

    async def send_get_request(
        self,
        path: str,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any: ...

    async def send_post_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any: ...

    async def send_put_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any: ...

    async def send_patch_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any: ...

    async def send_delete_request(
        self,
        path: str,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any: ...


class CloudHttpClient:
    """HTTP client wrapper for API7 Cloud endpoints.

    One instance serves any number of concurrent calls; the underlying
    aiohttp session owns the connection pool.

    When a tracer is given, the session must have been created with the
    tracer's ``trace_config()``; otherwise series are still published but
    carry no connection events.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str | URL,
        token: AccessToken,
        *,
        gen_id_for_calls: bool = False,
        id_generator: IDGenerator | None = None,
        tracer: TraceCollector | None = None,
        server_hostname: str | None = None,
    ) -> None:
        self._session = session
        self._base_url = URL(base_url)
        self._token = token
        self._gen_id_for_calls = gen_id_for_calls
        self._id_generator = id_generator or UUIDGenerator()
        self._tracer = tracer
        self._server_hostname = server_hostname

    def _url(self, path: str, query: QueryParams | None = None) -> URL:
        url = self._base_url.with_path(path)
        if query:
            url = url.with_query({key: str(value) for key, value in query.items()})
        return url

    def _headers(
        self, extra: Headers | None, *, has_body: bool
    ) -> CIMultiDict[str]:
        headers: CIMultiDict[str] = CIMultiDict()
        if has_body:
            headers["Content-Type"] = "application/json"
        headers["Authorization"] = self._token.authorization()
        if self._gen_id_for_calls:
            headers[REQUEST_ID_HEADER] = self._id_generator.next_id()
        if extra:
            # Caller headers win on name collisions
            headers.update(extra)
        return headers

    async def send_request(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None = None,
        body: Any = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        """Send one request and decode the enveloped response.

        Args:
            method: HTTP verb.
            path: URL path, replacing the path of the base URL.
            query: Optional query parameters.
            body: JSON-serializable request body. Not allowed for GET/DELETE.
            decoder: Turns the envelope payload into the return value.
            headers: Extra headers, e.g. a cluster scope header.

        Returns:
            The decoder result, or None without a decoder.

        Raises:
            CloudTimeout: If the request timed out.
            CloudNetworkError: If the request could not be completed.
            CloudServerError: On a 5xx response.
            CloudAPIError: On any other non-200 response.
            CloudDecodeError: If the envelope or payload is malformed.
            ValueError: If a body is given for GET/DELETE or is not JSON
                serializable.
        """
        method = method.upper()
        if body is not None and method in _BODYLESS_METHODS:
            raise ValueError(f"{method} requests must not carry a body")

        url = self._url(path, query)
        data = None
        if body is not None:
            try:
                data = json.dumps(body).encode()
            except (TypeError, ValueError) as err:
                raise ValueError(f"encode request body: {err}") from err
        request_headers = self._headers(headers, has_body=data is not None)

        kwargs: dict[str, Any] = {"headers": request_headers}
        if data is not None:
            kwargs["data"] = data
        if self._server_hostname:
            kwargs["server_hostname"] = self._server_hostname

        tracer = self._tracer
        series = None
        if tracer is not None:
            series = tracer.begin(method, url, request_headers, data)
            kwargs["trace_request_ctx"] = tracer.request_context(series)

        _LOGGER.debug("Sending %s %s", method, url)
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                status = resp.status
                payload = await resp.read()
                if tracer is not None and series is not None:
                    tracer.record_response(series, resp, payload)
        except asyncio.CancelledError as err:
            if tracer is not None and series is not None:
                tracer.record_error(series, err)
            raise
        except TimeoutError as err:
            if tracer is not None and series is not None:
                tracer.record_error(series, err)
                await tracer.publish_async(series)
            raise CloudTimeout(f"send http request: {method} {url} timed out") from err
        except aiohttp.ClientError as err:
            if tracer is not None and series is not None:
                tracer.record_error(series, err)
                await tracer.publish_async(series)
            raise CloudNetworkError(f"send http request: {err}") from err
        else:
            if tracer is not None and series is not None:
                await tracer.publish_async(series)
        finally:
            # No-op when already published; never waits
            if tracer is not None and series is not None:
                tracer.publish(series)

        _LOGGER.debug("Received %s for %s %s", status, method, url)
        return decode_response(status, payload, decoder)

    async def send_get_request(
        self,
        path: str,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        return await self.send_request(
            "GET", path, query=query, decoder=decoder, headers=headers
        )

    async def send_post_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        return await self.send_request(
            "POST", path, query=query, body=body, decoder=decoder, headers=headers
        )

    async def send_put_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        return await self.send_request(
            "PUT", path, query=query, body=body, decoder=decoder, headers=headers
        )

    async def send_patch_request(
        self,
        path: str,
        body: Any,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        return await self.send_request(
            "PATCH", path, query=query, body=body, decoder=decoder, headers=headers
        )

    async def send_delete_request(
        self,
        path: str,
        *,
        query: QueryParams | None = None,
        decoder: PayloadDecoder | None = None,
        headers: Headers | None = None,
    ) -> Any:
        return await self.send_request(
            "DELETE", path, query=query, decoder=decoder, headers=headers
        )
