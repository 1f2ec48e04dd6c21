"""Primary driver API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

PRIMARY_API_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class PrimaryApiConfig:
    """Holds the primary API location and credentials."""

    base_url: str
    token: str | None
    resilience: ResilienceConfig


def get_primary_api_config(*, resilience: ResilienceConfig | None = None) -> PrimaryApiConfig:
    values = require_env_vars(("DRIVER_API_BASE_URL",))
    base_url = values["DRIVER_API_BASE_URL"].rstrip("/") + "/"
    token = optional_env_var("DRIVER_API_TOKEN")
    headers = {"Content-Type": "application/json"}
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    return PrimaryApiConfig(
        base_url=base_url,
        token=token,
        resilience=resilience
        or ResilienceConfig(
            name="primary-api",
            base_url=base_url,
            timeout_seconds=PRIMARY_API_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            cache=None,
            default_headers=headers,
        ),
    )
