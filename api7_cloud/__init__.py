"""Python SDK for the API7 Cloud control-plane API."""

__version__ = "0.1.0"

from .auth import AccessToken, load_token_file, resolve_access_token
from .client import CloudClient
from .envelope import ResponseEnvelope, Status, build_envelope, decode_response
from .errors import (
    CloudAPIError,
    CloudClientError,
    CloudDecodeError,
    CloudEmptyTokenError,
    CloudIterationError,
    CloudNetworkError,
    CloudServerError,
    CloudTimeout,
)
from .http import CloudHttpClient, HttpTransport
from .http_trace import (
    BufferEmitter,
    CallbackEmitter,
    NullEmitter,
    QueueEmitter,
    TraceCollector,
    TraceEmitter,
    TraceEvent,
    TraceSeries,
    format_trace_series,
)
from .ids import IDGenerator, UUIDGenerator
from .list_iterator import (
    Filter,
    IteratorState,
    ListEnvelope,
    ListIterator,
    Pagination,
    merge_pagination,
)
from .options import DEFAULT_OPTIONS, ClientOptions, load_options
from .resources import (
    CLUSTER_HEADER_NAME,
    ApplicationClient,
    ClusterClient,
    ListOptions,
    ResourceScope,
    UserClient,
)

__all__ = [
    "CLUSTER_HEADER_NAME",
    "DEFAULT_OPTIONS",
    "AccessToken",
    "ApplicationClient",
    "BufferEmitter",
    "CallbackEmitter",
    "ClientOptions",
    "CloudAPIError",
    "CloudClient",
    "CloudClientError",
    "CloudDecodeError",
    "CloudEmptyTokenError",
    "CloudHttpClient",
    "CloudIterationError",
    "CloudNetworkError",
    "CloudServerError",
    "CloudTimeout",
    "ClusterClient",
    "Filter",
    "HttpTransport",
    "IDGenerator",
    "IteratorState",
    "ListEnvelope",
    "ListIterator",
    "ListOptions",
    "NullEmitter",
    "Pagination",
    "QueueEmitter",
    "ResourceScope",
    "ResponseEnvelope",
    "Status",
    "TraceCollector",
    "TraceEmitter",
    "TraceEvent",
    "TraceSeries",
    "UUIDGenerator",
    "UserClient",
    "__version__",
    "build_envelope",
    "decode_response",
    "format_trace_series",
    "load_options",
    "load_token_file",
    "merge_pagination",
    "resolve_access_token",
]
