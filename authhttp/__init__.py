"""HTTP request helper for authentication/profile endpoints.

Loads `.env` and `~/.env` so proxy and environment settings apply consistently
when the package is imported directly.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(Path.home() / ".env")

from authhttp.environment import PROD, Environment
from authhttp.errors import ConfigError, EncodingError, RequestError, TransportError
from authhttp.service import HttpService, RequestOutcome, stderr_observer
from authhttp.transport import Connection, ProxyConfig, open_connection
from authhttp.urls import build_query, concatenate_url, constant_url

__all__ = [
    "PROD",
    "ConfigError",
    "Connection",
    "EncodingError",
    "Environment",
    "HttpService",
    "ProxyConfig",
    "RequestError",
    "RequestOutcome",
    "TransportError",
    "build_query",
    "concatenate_url",
    "constant_url",
    "open_connection",
    "stderr_observer",
]
