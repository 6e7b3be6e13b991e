"""Exception types raised by authhttp."""

from __future__ import annotations


class RequestError(Exception):
    """A GET/POST call could not produce a response body."""


class TransportError(RequestError):
    """The connection failed, or the response could not be read.

    `status` is set when the server answered with an HTTP status before the
    failure (for example a 500 whose body was then read as an error page).
    """

    def __init__(self, message: str, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class ConfigError(ValueError):
    """A static URL or setting is malformed."""


class EncodingError(ValueError):
    """A query key or value could not be percent-encoded."""
