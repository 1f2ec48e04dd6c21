"""Primary driver API adapter."""

from __future__ import annotations

from .client import PrimaryApiClient, PrimaryApiError

__all__ = ["PrimaryApiClient", "PrimaryApiError"]
