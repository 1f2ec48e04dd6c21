"""Blob-storage adapter (document source of last resort)."""

from __future__ import annotations

from .client import BlobStorageError, BlobStorageSource

__all__ = ["BlobStorageError", "BlobStorageSource"]
