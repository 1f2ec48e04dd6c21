"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class DocumentType(StrEnum):
    DRIVING_LICENSE = "drivingLicense"
    AADHAAR_CARD = "aadhaarCard"
    BIKE_INSURANCE = "bikeInsurance"
    RC_BOOK = "rcBook"
    PROFILE_PHOTO = "profilePhoto"
    OTHER = "other"


REQUIRED_DOCUMENT_TYPES: Final[tuple[DocumentType, ...]] = (
    DocumentType.DRIVING_LICENSE,
    DocumentType.AADHAAR_CARD,
    DocumentType.BIKE_INSURANCE,
    DocumentType.RC_BOOK,
    DocumentType.PROFILE_PHOTO,
)


class DocumentStatus(StrEnum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class DriverVerificationStatus(StrEnum):
    PENDING = "pending"
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"


class SourceOrigin(StrEnum):
    """Adapter that produced a record. Used for merge priority only."""

    API = "api"
    DOCUMENT_STORE = "document-store"
    STORAGE = "storage"


# Highest trust first.
SOURCE_PRIORITY: Final[tuple[SourceOrigin, ...]] = (
    SourceOrigin.API,
    SourceOrigin.DOCUMENT_STORE,
    SourceOrigin.STORAGE,
)


def source_rank(source: SourceOrigin) -> int:
    """Return the trust rank of ``source``; lower wins."""

    return SOURCE_PRIORITY.index(source)


class StatusKind(StrEnum):
    COMPUTED = "computed"
    OVERRIDE = "override"


class DriverDecision(StrEnum):
    """Wire values the primary API expects for driver-level decisions."""

    APPROVED = "approved"
    REJECTED = "rejected"
