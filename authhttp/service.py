"""GET/POST executor that turns any readable response into a body string.

A server error that still carries a body (for example a JSON error payload on
a 4xx/5xx) is returned like any other response. Only a failure with no body
at all is raised, as TransportError.

Never passes Authorization values or POST body text to the observer.
"""

from __future__ import annotations

import http.client
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from authhttp import config
from authhttp.errors import TransportError
from authhttp.transport import Connection, ProxyConfig, open_connection
from authhttp.urls import url_text

Observer = Callable[[str], None]
Opener = Callable[[object, ProxyConfig], Connection]


def stderr_observer(msg: str) -> None:
    print(f"[authhttp] {msg}", file=sys.stderr)


@dataclass(frozen=True)
class RequestOutcome:
    """Decoded response body and the status code it arrived with."""

    body: str
    status: int | None


def _close_quietly(stream: BinaryIO | None) -> None:
    if stream is None:
        return
    try:
        stream.close()
    except OSError:
        pass


def _read_bytes(stream: BinaryIO, url: str) -> bytes:
    try:
        return stream.read() or b""
    except (OSError, http.client.HTTPException) as exc:
        raise TransportError(f"could not read response from {url}: {exc}", url=url) from exc


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


class HttpService:
    """Issues requests for an authentication client through a fixed proxy."""

    def __init__(
        self,
        proxy: ProxyConfig,
        observer: Observer | None = None,
        opener: Opener | None = None,
    ):
        if proxy is None:
            raise ValueError("proxy is required; use ProxyConfig.direct() for no proxy")
        self._proxy = proxy
        self._observer = observer
        self._opener = opener or open_connection

    @classmethod
    def from_env(cls) -> "HttpService":
        """Build a service from AUTHHTTP_PROXY / AUTHHTTP_DEBUG."""
        observer = stderr_observer if config.debug_enabled() else None
        return cls(config.proxy_setting(), observer=observer)

    @property
    def proxy(self) -> ProxyConfig:
        return self._proxy

    def _log(self, msg: str) -> None:
        if self._observer is not None:
            self._observer(msg)

    def _open(self, url) -> Connection:
        self._log(f"Opening connection to {url_text(url)}")
        return self._opener(url, self._proxy)

    def _read_outcome(self, connection: Connection) -> RequestOutcome:
        """Read the response, falling back to the error page on failure."""
        url = connection.url
        self._log(f"Reading data from {url}")

        stream = None
        try:
            try:
                stream = connection.input_stream()
                body = _decode(_read_bytes(stream, url))
            except TransportError as exc:
                _close_quietly(stream)
                stream = connection.error_stream()
                if stream is None:
                    self._log(f"Request failed: {exc}")
                    raise
                self._log(f"Reading error page from {url}")
                raw = _read_bytes(stream, url)
                if not raw:
                    self._log(f"Request failed, error page was empty: {exc}")
                    raise exc
                body = _decode(raw)

            self._log(f"Successful read, server response was {connection.response_code}")
            return RequestOutcome(body=body, status=connection.response_code)
        finally:
            _close_quietly(stream)

    def post_outcome(self, url, body: str, content_type: str) -> RequestOutcome:
        """POST `body` as UTF-8 `content_type` and return the response outcome."""
        if url is None or body is None or content_type is None:
            raise ValueError("url, body and content_type are required")

        with self._open(url) as connection:
            payload = body.encode("utf-8")
            connection.set_header("Content-Type", f"{content_type}; charset=utf-8")
            connection.set_header("Content-Length", str(len(payload)))
            connection.do_output = True

            self._log(f"Writing POST data to {connection.url} ({len(payload)} bytes)")
            with connection.output_stream() as out:
                out.write(payload)

            return self._read_outcome(connection)

    def post(self, url, body: str, content_type: str) -> str:
        """POST and return the raw response text, error pages included.

        Raises TransportError when the server gave no body at all.
        """
        return self.post_outcome(url, body, content_type).body

    def get_outcome(self, url, authorization: str | None = None) -> RequestOutcome:
        if url is None:
            raise ValueError("url is required")

        with self._open(url) as connection:
            if authorization is not None:
                connection.set_header("Authorization", authorization)
            return self._read_outcome(connection)

    def get(self, url, authorization: str | None = None) -> str:
        """GET and return the raw response text, error pages included.

        Raises TransportError when the server gave no body at all.
        """
        return self.get_outcome(url, authorization).body
