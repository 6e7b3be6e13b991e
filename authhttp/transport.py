"""Transport opener: per-call HTTP connections routed through an explicit proxy.

Thin wrapper over urllib. Nothing touches the network until the response is
requested, so unreachable hosts and proxies surface from `input_stream()`.
"""

from __future__ import annotations

import http.client
import io
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import BinaryIO

from authhttp.errors import ConfigError, TransportError
from authhttp.urls import url_text

CONNECT_TIMEOUT = 15.0
READ_TIMEOUT = 15.0

_NO_PROXY_WORDS = {"", "direct", "none", "no_proxy"}
_PROXY_KINDS = ("direct", "http")


@dataclass(frozen=True)
class ProxyConfig:
    """Proxy selection for every request a service makes."""

    kind: str = "direct"
    host: str = ""
    port: int = 0

    def __post_init__(self):
        if self.kind not in _PROXY_KINDS:
            raise ConfigError(f"unsupported proxy kind: {self.kind!r}")

    @classmethod
    def direct(cls) -> "ProxyConfig":
        """Explicit no-proxy setting. Ignores http_proxy/https_proxy env vars."""
        return cls()

    @classmethod
    def http(cls, host: str, port: int) -> "ProxyConfig":
        host = host.strip()
        if not host:
            raise ConfigError("proxy host is required")
        try:
            number = int(port)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid proxy port: {port!r}") from exc
        if not 0 < number < 65536:
            raise ConfigError(f"proxy port out of range: {port}")
        return cls(kind="http", host=host, port=number)

    @classmethod
    def parse(cls, text: str | None) -> "ProxyConfig":
        """Parse `direct` / `none` / empty, or `http://host:port`."""
        raw = (text or "").strip()
        if raw.lower() in _NO_PROXY_WORDS:
            return cls.direct()

        parts = urllib.parse.urlsplit(raw)
        if parts.scheme.lower() != "http" or not parts.hostname:
            raise ConfigError(f"unsupported proxy setting: {raw!r}")
        try:
            port = parts.port or 80
        except ValueError as exc:
            raise ConfigError(f"invalid proxy port in {raw!r}") from exc
        return cls.http(parts.hostname, port)

    @property
    def is_direct(self) -> bool:
        return self.kind == "direct"

    def handler(self) -> urllib.request.ProxyHandler:
        """urllib handler that routes requests according to this setting."""
        if self.is_direct:
            # An empty mapping disables proxy discovery from the environment.
            return urllib.request.ProxyHandler({})
        address = f"http://{self.host}:{self.port}"
        return urllib.request.ProxyHandler({"http": address, "https": address})

    def __str__(self) -> str:
        if self.is_direct:
            return "DIRECT"
        return f"HTTP @ {self.host}:{self.port}"


class _RequestBody(io.BytesIO):
    """Buffer handed out by `Connection.output_stream()`.

    The written bytes become the request body when the stream is closed.
    """

    def __init__(self, connection: "Connection"):
        super().__init__()
        self._connection = connection

    def close(self) -> None:
        if not self.closed:
            self._connection._body = self.getvalue()
        super().close()


class Connection:
    """A single HTTP exchange. Owned by one call and never reused."""

    def __init__(self, url: str, proxy: ProxyConfig):
        self.url = url
        self.proxy = proxy
        self.connect_timeout = CONNECT_TIMEOUT
        self.read_timeout = READ_TIMEOUT
        self.use_caches = False
        self.do_output = False
        self.response_code: int | None = None

        self._headers: dict[str, str] = {}
        self._body: bytes | None = None
        self._opener = urllib.request.build_opener(proxy.handler())
        self._response: BinaryIO | None = None
        self._error_response: urllib.error.HTTPError | None = None
        self._failure: TransportError | None = None
        self._sent = False

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    def set_header(self, name: str, value: str) -> None:
        self._headers[name] = value

    def output_stream(self) -> BinaryIO:
        if not self.do_output:
            raise TransportError("connection is not marked for request-body output", url=self.url)
        if self._sent:
            raise TransportError("request already sent", url=self.url)
        return _RequestBody(self)

    def _request_headers(self) -> dict[str, str]:
        headers = dict(self._headers)
        if not self.use_caches:
            headers.setdefault("Cache-Control", "no-cache")
            headers.setdefault("Pragma", "no-cache")
        return headers

    def _send(self) -> None:
        self._sent = True
        data = (self._body or b"") if self.do_output else None
        req = urllib.request.Request(
            self.url,
            data=data,
            headers=self._request_headers(),
            method="POST" if self.do_output else "GET",
        )
        # urllib applies one socket timeout to both connect and reads.
        timeout = max(self.connect_timeout, self.read_timeout)
        try:
            self._response = self._opener.open(req, timeout=timeout)
            self.response_code = int(getattr(self._response, "status", 0) or 0)
        except urllib.error.HTTPError as exc:
            self.response_code = int(exc.code)
            self._error_response = exc
            self._failure = TransportError(
                f"server returned HTTP {exc.code} for {self.url}",
                url=self.url,
                status=self.response_code,
            )
        except urllib.error.URLError as exc:
            reason = exc.reason if hasattr(exc, "reason") else exc
            self._failure = TransportError(f"could not connect to {self.url}: {reason}", url=self.url)
            self._failure.__cause__ = exc
        except (OSError, http.client.HTTPException) as exc:
            self._failure = TransportError(f"request to {self.url} failed: {exc}", url=self.url)
            self._failure.__cause__ = exc

    def input_stream(self) -> BinaryIO:
        """Send the request if needed and return the response body stream."""
        if not self._sent:
            self._send()
        if self._failure is not None:
            raise self._failure
        return self._response

    def error_stream(self) -> BinaryIO | None:
        """Body sent alongside a failure status, or None if there is none."""
        error = self._error_response
        if error is None or error.fp is None:
            return None
        return error

    def close(self) -> None:
        response, error = self._response, self._error_response
        self._response = None
        self._error_response = None
        try:
            if response is not None:
                response.close()
        finally:
            if error is not None:
                error.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_connection(url, proxy: ProxyConfig) -> Connection:
    """Open a connection to an absolute http(s) URL through `proxy`."""
    if url is None:
        raise ValueError("url is required")
    if proxy is None:
        raise ValueError("proxy is required; use ProxyConfig.direct() for no proxy")

    text = url_text(url)
    try:
        parts = urllib.parse.urlsplit(text)
        parts.port  # raises on an out-of-range port
    except ValueError as exc:
        raise TransportError(f"malformed URL: {text}", url=text) from exc
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise TransportError(f"malformed URL: {text}", url=text)

    return Connection(text, proxy)
