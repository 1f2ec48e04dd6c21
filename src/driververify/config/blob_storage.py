"""Blob storage configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int, optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

BLOB_STORAGE_BASE_URL = "https://storage.googleapis.com/storage/v1/"
BLOB_DOWNLOAD_BASE_URL = "https://firebasestorage.googleapis.com/v0/"
BLOB_STORAGE_TIMEOUT_SECONDS = 10.0
DEFAULT_LISTINGS_PER_SECOND = 10
DEFAULT_LISTING_CACHE_TTL_SECONDS = 30.0


@dataclass(frozen=True)
class BlobStorageConfig:
    """Holds the bucket, endpoints and credentials for the blob-storage tree."""

    bucket: str
    download_base_url: str
    resilience: ResilienceConfig


def get_blob_storage_config(*, resilience: ResilienceConfig | None = None) -> BlobStorageConfig:
    values = require_env_vars(("BLOB_STORAGE_BUCKET",))
    base_url = optional_env_var("BLOB_STORAGE_BASE_URL") or BLOB_STORAGE_BASE_URL
    download_base_url = optional_env_var("BLOB_STORAGE_DOWNLOAD_BASE_URL") or BLOB_DOWNLOAD_BASE_URL
    token = optional_env_var("BLOB_STORAGE_TOKEN")
    headers = {"Authorization": f"Bearer {token}"} if token else None

    listings_per_second = env_int("BLOB_STORAGE_LISTINGS_PER_SECOND", DEFAULT_LISTINGS_PER_SECOND)
    cache_ttl = env_float("BLOB_STORAGE_CACHE_TTL", DEFAULT_LISTING_CACHE_TTL_SECONDS)
    return BlobStorageConfig(
        bucket=values["BLOB_STORAGE_BUCKET"],
        download_base_url=download_base_url.rstrip("/") + "/",
        resilience=resilience
        or ResilienceConfig(
            name="blob-storage",
            base_url=base_url.rstrip("/") + "/",
            timeout_seconds=BLOB_STORAGE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=listings_per_second, per_seconds=1.0),
            cache=CacheConfig(backend="memory", default_ttl_seconds=cache_ttl),
            default_headers=headers,
        ),
    )
