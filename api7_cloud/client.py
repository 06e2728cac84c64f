"""Factory assembling the API7 Cloud transport and resource clients."""

from __future__ import annotations

import dataclasses
import logging
from types import TracebackType

import aiohttp

from .auth import AccessToken, resolve_access_token
from .http import CloudHttpClient
from .http_trace import QueueEmitter, TraceCollector, TraceEmitter
from .ids import IDGenerator, UUIDGenerator
from .options import DEFAULT_OPTIONS, ClientOptions
from .resources import ApplicationClient, ClusterClient, UserClient

_LOGGER = logging.getLogger(__name__)


class CloudClient:
    """Holds one transport and the resource clients sharing it.

    Usage:
        async with CloudClient(ClientOptions(token="...")) as cloud:
            me = await cloud.users.me()
            async for app in cloud.applications.list_applications(cp_id):
                ...

    With ``enable_http_trace`` and no custom emitter, finished trace series
    are queued on ``cloud.traces``; consume them from a separate task.
    """

    def __init__(
        self,
        options: ClientOptions,
        *,
        session: aiohttp.ClientSession | None = None,
        trace_emitter: TraceEmitter | None = None,
        id_generator: IDGenerator | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            options: Client options; unset fields take the defaults.
            session: Optional session to use instead of an owned one. With
                tracing on it must be created with ``trace_configs`` set to
                ``[cloud.trace_config()]`` to capture connection events.
            trace_emitter: Where finished trace series go. Defaults to a
                QueueEmitter exposed as ``traces``.
            id_generator: Source of request and trace series IDs.

        Raises:
            ValueError: If the options are invalid.
            CloudEmptyTokenError: If no access token is configured.
        """
        self._options = dataclasses.replace(options).merge(DEFAULT_OPTIONS)
        self._options.validate()
        self._token: AccessToken = resolve_access_token(self._options)
        self._id_generator = id_generator or UUIDGenerator()

        self._tracer: TraceCollector | None = None
        if self._options.enable_http_trace:
            self._tracer = TraceCollector(
                trace_emitter or QueueEmitter(), id_generator=self._id_generator
            )

        self._session = session
        self._owns_session = session is None
        self._http: CloudHttpClient | None = None
        self._users: UserClient | None = None
        self._applications: ApplicationClient | None = None
        self._clusters: ClusterClient | None = None

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def traces(self) -> QueueEmitter | None:
        """Queue of finished trace series, when tracing uses the default emitter."""
        if self._tracer is not None and isinstance(self._tracer.emitter, QueueEmitter):
            return self._tracer.emitter
        return None

    def trace_config(self) -> aiohttp.TraceConfig | None:
        """TraceConfig to install on an injected session, None without tracing."""
        return self._tracer.trace_config() if self._tracer is not None else None

    async def start(self) -> None:
        """Create the session (if owned) and wire the clients. Idempotent."""
        if self._http is not None:
            return
        if self._session is None:
            trace_configs = [self._tracer.trace_config()] if self._tracer else None
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=self._options.ssl_context()),
                timeout=self._options.client_timeout(),
                trace_configs=trace_configs,
            )

        self._http = CloudHttpClient(
            self._session,
            self._options.server_addr,
            self._token,
            gen_id_for_calls=self._options.gen_id_for_calls,
            id_generator=self._id_generator,
            tracer=self._tracer,
            server_hostname=self._options.server_name_indication or None,
        )
        self._users = UserClient(self._http)
        self._applications = ApplicationClient(self._http)
        self._clusters = ClusterClient(self._http)
        _LOGGER.debug(
            "API7 Cloud client ready for %s (trace=%s)",
            self._options.server_addr,
            self._tracer is not None,
        )

    async def close(self) -> None:
        """Close the owned session. Injected sessions are left open."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._http = None

    async def __aenter__(self) -> CloudClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _require(self) -> CloudHttpClient:
        if self._http is None:
            raise RuntimeError("CloudClient is not started; use 'async with' or start()")
        return self._http

    @property
    def http(self) -> CloudHttpClient:
        """The shared transport, for endpoints without a resource client."""
        return self._require()

    @property
    def users(self) -> UserClient:
        self._require()
        assert self._users is not None
        return self._users

    @property
    def applications(self) -> ApplicationClient:
        self._require()
        assert self._applications is not None
        return self._applications

    @property
    def clusters(self) -> ClusterClient:
        self._require()
        assert self._clusters is not None
        return self._clusters
