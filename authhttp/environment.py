"""Backend environment record: the host set requests are sent to."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

# Env var -> Environment field, for overriding a default host set.
_ENV_OVERRIDES: dict[str, str] = {
    "AUTHHTTP_AUTH_HOST": "auth_host",
    "AUTHHTTP_ACCOUNTS_HOST": "accounts_host",
    "AUTHHTTP_SESSION_HOST": "session_host",
    "AUTHHTTP_SERVICES_HOST": "services_host",
    "AUTHHTTP_ENV_NAME": "name",
}


@dataclass(frozen=True)
class Environment:
    """Hostnames for the auth, accounts, session and services endpoints."""

    auth_host: str
    accounts_host: str
    session_host: str
    services_host: str
    name: str

    @classmethod
    def create(cls, auth: str, accounts: str, session: str, services: str, name: str) -> "Environment":
        return cls(
            auth_host=auth,
            accounts_host=accounts,
            session_host=session,
            services_host=services,
            name=name,
        )

    def as_string(self) -> str:
        return ", ".join(
            [
                f"authHost='{self.auth_host}'",
                f"accountsHost='{self.accounts_host}'",
                f"sessionHost='{self.session_host}'",
                f"servicesHost='{self.services_host}'",
                f"name='{self.name}'",
            ]
        )


PROD = Environment.create(
    "https://authserver.mojang.com",
    "https://api.mojang.com",
    "https://sessionserver.mojang.com",
    "https://api.minecraftservices.com",
    "PROD",
)


def environment_from_env(default: Environment = PROD) -> Environment:
    """Return `default` with any AUTHHTTP_*_HOST / AUTHHTTP_ENV_NAME overrides applied."""
    overrides = {}
    for var, field_name in _ENV_OVERRIDES.items():
        value = os.getenv(var, "").strip()
        if value:
            overrides[field_name] = value
    if not overrides:
        return default
    return replace(default, **overrides)
