"""Client configuration for API7 Cloud.

Options can be built in code or loaded from a YAML (or JSON) file whose
keys match the field names, e.g.::

    server_addr: https://api.api7.cloud
    token_path: ~/.api7cloud/credentials
    enable_http_trace: true
"""

from __future__ import annotations

import dataclasses
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import aiohttp
import yaml

DEFAULT_SERVER_ADDR = "https://api.api7.cloud"


@dataclass
class ClientOptions:
    """Configuration for talking to API7 Cloud.

    Attributes:
        server_addr: Base URL of the API7 Cloud API.
        token: Personal access token. Takes precedence over token_path.
        token_path: YAML credentials file holding ``user.access_token``.
        dial_timeout: TCP connect timeout in seconds.
        tls_handshake_timeout: TLS handshake budget in seconds.
        insecure_skip_tls_verify: Skip verifying the server certificate.
        server_name_indication: Override for the TLS SNI extension.
        enable_http_trace: Collect lifecycle events for every call. Uses
            more memory; enable only for troubleshooting.
        gen_id_for_calls: Send a generated ``X-Request-ID`` on every call.
    """

    server_addr: str = ""
    token: str = ""
    token_path: str = ""
    dial_timeout: float = 0.0
    tls_handshake_timeout: float = 0.0
    insecure_skip_tls_verify: bool = False
    server_name_indication: str = ""
    enable_http_trace: bool = False
    gen_id_for_calls: bool = False

    def merge(self, defaults: ClientOptions) -> ClientOptions:
        """Fill unset fields from defaults, in place. Returns self."""
        if not self.server_addr:
            self.server_addr = defaults.server_addr
        if not self.token:
            self.token = defaults.token
        if not self.token_path:
            self.token_path = defaults.token_path
        if not self.dial_timeout:
            self.dial_timeout = defaults.dial_timeout
        if not self.tls_handshake_timeout:
            self.tls_handshake_timeout = defaults.tls_handshake_timeout
        if not self.insecure_skip_tls_verify:
            self.insecure_skip_tls_verify = defaults.insecure_skip_tls_verify
        if not self.server_name_indication:
            self.server_name_indication = defaults.server_name_indication
        return self

    def validate(self) -> None:
        """Check the options are usable.

        Raises:
            ValueError: If server_addr is not an http(s) URL or a timeout
                is negative.
        """
        parsed = urlparse(self.server_addr)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid server address: {self.server_addr!r}")
        if self.dial_timeout < 0 or self.tls_handshake_timeout < 0:
            raise ValueError("Timeouts must not be negative")

    def client_timeout(self) -> aiohttp.ClientTimeout:
        """Connection timeouts applied to every call.

        There is no total timeout; callers bound a call by cancelling it.
        """
        connect = None
        if self.dial_timeout or self.tls_handshake_timeout:
            connect = self.dial_timeout + self.tls_handshake_timeout
        return aiohttp.ClientTimeout(
            total=None,
            connect=connect,
            sock_connect=self.dial_timeout or None,
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Build the TLS context used for https server addresses."""
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        context.maximum_version = ssl.TLSVersion.TLSv1_3
        if self.insecure_skip_tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> ClientOptions:
        """Build options from a config mapping, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


DEFAULT_OPTIONS = ClientOptions(
    server_addr=DEFAULT_SERVER_ADDR,
    dial_timeout=5.0,
    tls_handshake_timeout=10.0,
)


def load_options(path: Path) -> ClientOptions:
    """Load options from a YAML file and fill the defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping or the options are invalid.
    """
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Options file must contain a mapping: {path}")
    options = ClientOptions.from_mapping(data).merge(DEFAULT_OPTIONS)
    options.validate()
    return options
