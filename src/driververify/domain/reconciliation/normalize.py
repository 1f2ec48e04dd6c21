"""Turn raw per-source document payloads into canonical ``DocumentRecord`` values.

The three sources spell the same concept in different ways (``url`` versus
``downloadURL``, ``status`` versus ``verificationStatus``, camelCase versus
snake_case type keys). Every logical field owns an alias list that is checked in a
fixed order; the first non-empty value wins. New spellings are added to the tables,
not to the merge logic.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, cast

from driververify.domain.model import (
    REQUIRED_DOCUMENT_TYPES,
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ReviewState,
)

from .classify import tokenize

if TYPE_CHECKING:
    from driververify.domain.model import SourceOrigin

log = logging.getLogger(__name__)

type RawDocument = Mapping[str, object]

FIELD_ALIASES: Final[Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {
        "url": ("url", "downloadURL", "downloadUrl", "download_url", "fileUrl", "file_url"),
        "status": ("status", "verificationStatus", "verification_status"),
        "verified": ("verified", "isVerified", "is_verified"),
        "uploaded_at": ("uploadedAt", "uploaded_at", "uploadDate", "timeCreated", "createdAt"),
        "file_name": ("fileName", "file_name", "name"),
        "content_type": ("contentType", "content_type", "mimeType"),
        "size_bytes": ("sizeBytes", "size_bytes", "size"),
        "verification_notes": (
            "verificationNotes",
            "verification_notes",
            "verificationComments",
            "comments",
            "notes",
        ),
        "rejection_reason": ("rejectionReason", "rejection_reason"),
        "folder": ("folder",),
        "source_path": ("sourcePath", "source_path", "fullPath", "path"),
    }
)

DOCUMENT_TYPE_ALIASES: Final[Mapping[DocumentType, tuple[str, ...]]] = MappingProxyType(
    {
        DocumentType.DRIVING_LICENSE: (
            "drivingLicense",
            "driving_license",
            "drivingLicence",
            "license",
            "dl",
        ),
        DocumentType.AADHAAR_CARD: (
            "aadhaarCard",
            "aadhaar_card",
            "aadhaar",
            "aadharCard",
            "aadhar_card",
        ),
        DocumentType.BIKE_INSURANCE: ("bikeInsurance", "bike_insurance", "insurance"),
        DocumentType.RC_BOOK: (
            "rcBook",
            "rc_book",
            "rccard",
            "registrationCertificate",
            "rc",
        ),
        DocumentType.PROFILE_PHOTO: ("profilePhoto", "profile_photo", "photo", "profile"),
    }
)

STATUS_ALIASES: Final[Mapping[str, DocumentStatus]] = MappingProxyType(
    {
        "pending": DocumentStatus.PENDING,
        "pending_verification": DocumentStatus.PENDING,
        "under_review": DocumentStatus.PENDING,
        "submitted": DocumentStatus.PENDING,
        "verified": DocumentStatus.VERIFIED,
        "approved": DocumentStatus.VERIFIED,
        "rejected": DocumentStatus.REJECTED,
        "declined": DocumentStatus.REJECTED,
    }
)

_EPOCH_MILLIS_THRESHOLD: Final[int] = 10**11

_TYPE_BY_TOKENS: Final[Mapping[tuple[str, ...], DocumentType]] = MappingProxyType(
    {
        tokenize(alias): document_type
        for document_type, aliases in DOCUMENT_TYPE_ALIASES.items()
        for alias in aliases
    }
)


def first_present(raw: RawDocument, logical_field: str) -> object | None:
    """Return the first non-empty value among ``logical_field``'s aliases."""

    for alias in FIELD_ALIASES[logical_field]:
        value = raw.get(alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(raw: RawDocument, logical_field: str) -> str | None:
    value = first_present(raw, logical_field)
    if value is None:
        return None
    return str(value).strip()


def resolve_document_type(key: str) -> DocumentType | None:
    """Map a raw type key (any known spelling) to a canonical type."""

    for document_type, aliases in DOCUMENT_TYPE_ALIASES.items():
        if key in aliases:
            return document_type
    tokens = tokenize(key)
    if not tokens:
        return None
    if tokens in _TYPE_BY_TOKENS:
        return _TYPE_BY_TOKENS[tokens]
    compact = ("".join(tokens),)
    return _TYPE_BY_TOKENS.get(compact)


def parse_status(value: object) -> DocumentStatus | None:
    if isinstance(value, DocumentStatus):
        return value
    if not isinstance(value, str):
        return None
    return STATUS_ALIASES.get(value.strip().lower())


def parse_timestamp(value: object) -> datetime | None:
    """Parse the timestamp shapes the sources emit; unknown shapes yield ``None``."""

    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        seconds = value / 1000 if value > _EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    if isinstance(value, Mapping):
        mapping = cast(Mapping[str, object], value)
        seconds = mapping.get("seconds", mapping.get("_seconds"))
        if isinstance(seconds, int | float) and not isinstance(seconds, bool):
            return datetime.fromtimestamp(seconds, tz=UTC)
    return None


def _parse_size(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def derive_status(raw: RawDocument) -> DocumentStatus:
    """Derive the review status; an explicit status always beats the ``verified`` flag."""

    raw_status = first_present(raw, "status")
    if raw_status is None:
        if first_present(raw, "verified") is True:
            return DocumentStatus.VERIFIED
        return DocumentStatus.PENDING
    status = parse_status(raw_status)
    if status is None:
        log.warning("Unknown document status %r, treating as pending", raw_status)
        return DocumentStatus.PENDING
    return status


def review_state(raw: RawDocument) -> ReviewState | None:
    """Return the review fields of ``raw`` if it carries any review decision."""

    if first_present(raw, "status") is None and first_present(raw, "verified") is not True:
        return None
    return ReviewState(
        status=derive_status(raw),
        verification_notes=_text(raw, "verification_notes"),
        rejection_reason=_text(raw, "rejection_reason"),
    )


def normalize(
    raw: RawDocument,
    source: SourceOrigin,
    *,
    driver_id: str,
    document_type: DocumentType,
) -> DocumentRecord | None:
    """Normalize one raw document; ``None`` means no artifact was uploaded."""

    url = _text(raw, "url")
    if not url:
        return None

    uploaded_raw = first_present(raw, "uploaded_at")
    uploaded_at = parse_timestamp(uploaded_raw) if uploaded_raw is not None else None
    if uploaded_raw is not None and uploaded_at is None:
        log.debug("Unparseable upload timestamp %r for driver %s", uploaded_raw, driver_id)

    return DocumentRecord(
        driver_id=driver_id,
        document_type=document_type,
        url=url,
        source_origin=source,
        status=derive_status(raw),
        file_name=_text(raw, "file_name"),
        content_type=_text(raw, "content_type"),
        size_bytes=_parse_size(first_present(raw, "size_bytes")),
        uploaded_at=uploaded_at,
        verification_notes=_text(raw, "verification_notes"),
        rejection_reason=_text(raw, "rejection_reason"),
        folder=_text(raw, "folder"),
        source_path=_text(raw, "source_path"),
    )


@dataclass(slots=True)
class NormalizedDocuments:
    records: dict[DocumentType, DocumentRecord] = field(default_factory=dict)
    review_hints: dict[DocumentType, ReviewState] = field(default_factory=dict)
    extras: list[DocumentRecord] = field(default_factory=list)


def _as_raw(value: object) -> RawDocument | None:
    if isinstance(value, Mapping):
        return cast(RawDocument, value)
    return None


def normalize_document_map(
    documents: Mapping[str, object],
    source: SourceOrigin,
    *,
    driver_id: str,
) -> NormalizedDocuments:
    """Normalize a nested ``{type key: raw document}`` mapping.

    For each canonical type the aliases are tried in table order and the first entry
    with an artifact wins. Entries without an artifact but with a review decision are
    kept as review hints. Keys that name no known type are kept as ``other`` extras.
    """

    result = NormalizedDocuments()
    for document_type in REQUIRED_DOCUMENT_TYPES:
        for alias in DOCUMENT_TYPE_ALIASES[document_type]:
            raw = _as_raw(documents.get(alias))
            if raw is None:
                continue
            record = normalize(raw, source, driver_id=driver_id, document_type=document_type)
            if record is not None:
                result.records[document_type] = record
                break
            hint = review_state(raw)
            if hint is not None and document_type not in result.review_hints:
                result.review_hints[document_type] = hint
        if document_type in result.records:
            result.review_hints.pop(document_type, None)

    known_keys = {alias for aliases in DOCUMENT_TYPE_ALIASES.values() for alias in aliases}
    for key, value in documents.items():
        if key in known_keys:
            continue
        raw = _as_raw(value)
        if raw is None:
            continue
        document_type = resolve_document_type(key)
        if document_type is not None:
            if document_type not in result.records:
                record = normalize(raw, source, driver_id=driver_id, document_type=document_type)
                if record is not None:
                    result.records[document_type] = record
                    result.review_hints.pop(document_type, None)
            continue
        extra = normalize(raw, source, driver_id=driver_id, document_type=DocumentType.OTHER)
        if extra is not None:
            result.extras.append(extra)
    return result
