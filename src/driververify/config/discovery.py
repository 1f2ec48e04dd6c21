"""Discovery and resync tuning values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env_var

DEFAULT_ADAPTER_TIMEOUT_SECONDS = 15.0
DEFAULT_RESYNC_CONCURRENCY = 4
DEFAULT_ADMIN_ID = "admin"


@dataclass(frozen=True, slots=True)
class DiscoveryConfig:
    adapter_timeout_seconds: float = DEFAULT_ADAPTER_TIMEOUT_SECONDS
    resync_concurrency: int = DEFAULT_RESYNC_CONCURRENCY
    admin_id: str = DEFAULT_ADMIN_ID


def get_discovery_config() -> DiscoveryConfig:
    return DiscoveryConfig(
        adapter_timeout_seconds=env_float(
            "DRIVERVERIFY_ADAPTER_TIMEOUT", DEFAULT_ADAPTER_TIMEOUT_SECONDS
        ),
        resync_concurrency=env_int("DRIVERVERIFY_RESYNC_CONCURRENCY", DEFAULT_RESYNC_CONCURRENCY),
        admin_id=optional_env_var("DRIVERVERIFY_ADMIN_ID") or DEFAULT_ADMIN_ID,
    )
