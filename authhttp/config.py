"""Runtime settings read from the environment.

Env:
  AUTHHTTP_PROXY (optional) `direct` (default) or `http://host:port`
  AUTHHTTP_DEBUG (optional) `1`/`true`/`yes`/`on` prints request diagnostics to stderr
"""

from __future__ import annotations

import os

from authhttp.transport import ProxyConfig

_TRUTHY = {"1", "true", "yes", "on"}


def proxy_setting() -> ProxyConfig:
    return ProxyConfig.parse(os.getenv("AUTHHTTP_PROXY", ""))


def debug_enabled() -> bool:
    return os.getenv("AUTHHTTP_DEBUG", "").strip().lower() in _TRUTHY
