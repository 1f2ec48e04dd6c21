"""Aggregate per-document review state into one driver verification status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from driververify.domain.model import (
    REQUIRED_DOCUMENT_TYPES,
    ComputedStatus,
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    DriverVerificationStatus,
    OverrideStatus,
    source_rank,
)
from driververify.domain.verification.errors import AggregationInconsistency

if TYPE_CHECKING:
    from collections.abc import Mapping

    from driververify.domain.model import DriverStatus

log = logging.getLogger(__name__)


def _report(problems: list[AggregationInconsistency], message: str) -> None:
    log.error("Aggregation inconsistency: %s", message)
    problems.append(AggregationInconsistency(message))


def index_by_type(
    documents: Mapping[DocumentType, DocumentRecord],
) -> tuple[dict[DocumentType, DocumentRecord], list[AggregationInconsistency]]:
    """Re-key ``documents`` by each record's own type.

    A record filed under the wrong key, or two records claiming the same type, is an
    inconsistency: it is logged and the higher-priority record is kept. The list of
    problems found is returned alongside the cleaned mapping.
    """

    indexed: dict[DocumentType, DocumentRecord] = {}
    problems: list[AggregationInconsistency] = []
    for key, record in documents.items():
        if record.document_type is not key:
            _report(
                problems,
                f"record for {record.document_type} filed under {key} "
                f"(driver {record.driver_id})",
            )
        if not record.is_required:
            continue
        current = indexed.get(record.document_type)
        if current is None:
            indexed[record.document_type] = record
            continue
        _report(
            problems,
            f"duplicate {record.document_type} from {current.source_origin} and "
            f"{record.source_origin} (driver {record.driver_id})",
        )
        if source_rank(record.source_origin) < source_rank(current.source_origin):
            indexed[record.document_type] = record
    return indexed, problems


def _present(documents: Mapping[DocumentType, DocumentRecord]) -> list[DocumentRecord]:
    present: list[DocumentRecord] = []
    for document_type in REQUIRED_DOCUMENT_TYPES:
        record = documents.get(document_type)
        if record is not None and record.has_artifact:
            present.append(record)
    return present


def compute_status(
    documents: Mapping[DocumentType, DocumentRecord],
) -> DriverVerificationStatus:
    """Derive the driver status from the five required documents.

    A driver is verified only when every required document is present and verified.
    ``pending_verification`` means review has started and at least one uploaded
    document is still waiting for it; missing uploads alone keep the driver pending.
    """

    indexed, _ = index_by_type(documents)
    present = _present(indexed)
    if not present:
        return DriverVerificationStatus.PENDING
    if any(record.status is DocumentStatus.REJECTED for record in present):
        return DriverVerificationStatus.REJECTED
    verified_count = sum(1 for record in present if record.verified)
    if verified_count == len(REQUIRED_DOCUMENT_TYPES):
        return DriverVerificationStatus.VERIFIED
    awaiting_review = any(record.status is DocumentStatus.PENDING for record in present)
    if verified_count > 0 and awaiting_review:
        return DriverVerificationStatus.PENDING_VERIFICATION
    return DriverVerificationStatus.PENDING


def aggregate(
    documents: Mapping[DocumentType, DocumentRecord],
    *,
    override: OverrideStatus | None = None,
) -> DriverVerificationStatus:
    """Return the override verbatim if one exists, else the computed status."""

    if override is not None:
        return override.value
    return compute_status(documents)


def resolve_status(
    documents: Mapping[DocumentType, DocumentRecord],
    stored: DriverStatus | None,
) -> DriverStatus:
    """Status to persist after a recomputation; a stored override is never replaced."""

    if isinstance(stored, OverrideStatus):
        return stored
    return ComputedStatus(value=compute_status(documents))


@dataclass(frozen=True, slots=True)
class DocumentSummary:
    present: int
    verified: int
    rejected: int
    pending: int
    missing: tuple[DocumentType, ...]
    total_required: int = len(REQUIRED_DOCUMENT_TYPES)

    def to_payload(self) -> dict[str, object]:
        return {
            "present": self.present,
            "verified": self.verified,
            "rejected": self.rejected,
            "pending": self.pending,
            "missing": [document_type.value for document_type in self.missing],
            "totalRequired": self.total_required,
        }


def summarize(documents: Mapping[DocumentType, DocumentRecord]) -> DocumentSummary:
    indexed, _ = index_by_type(documents)
    present = _present(indexed)
    present_types = {record.document_type for record in present}
    return DocumentSummary(
        present=len(present),
        verified=sum(1 for record in present if record.status is DocumentStatus.VERIFIED),
        rejected=sum(1 for record in present if record.status is DocumentStatus.REJECTED),
        pending=sum(1 for record in present if record.status is DocumentStatus.PENDING),
        missing=tuple(
            document_type
            for document_type in REQUIRED_DOCUMENT_TYPES
            if document_type not in present_types
        ),
    )
