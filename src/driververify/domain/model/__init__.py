"""Domain model for driver document verification."""

from __future__ import annotations

from .document import DocumentRecord, ReviewState
from .driver import (
    ComputedStatus,
    Driver,
    DriverStatus,
    OverrideStatus,
    status_payload,
)
from .enums import (
    REQUIRED_DOCUMENT_TYPES,
    SOURCE_PRIORITY,
    DocumentStatus,
    DocumentType,
    DriverDecision,
    DriverVerificationStatus,
    SourceOrigin,
    StatusKind,
    source_rank,
)

__all__ = [
    "REQUIRED_DOCUMENT_TYPES",
    "SOURCE_PRIORITY",
    "ComputedStatus",
    "DocumentRecord",
    "DocumentStatus",
    "DocumentType",
    "Driver",
    "DriverDecision",
    "DriverStatus",
    "DriverVerificationStatus",
    "OverrideStatus",
    "ReviewState",
    "SourceOrigin",
    "StatusKind",
    "source_rank",
    "status_payload",
]
