"""Canonical document records."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .enums import DocumentStatus, DocumentType, SourceOrigin

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class ReviewState:
    """Administrative review fields of a document, detached from its artifact."""

    status: DocumentStatus
    verification_notes: str | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentRecord:
    """One physical artifact for one driver and document type.

    ``verified`` is derived from ``status`` and therefore can never disagree with it.
    """

    driver_id: str
    document_type: DocumentType
    url: str
    source_origin: SourceOrigin
    status: DocumentStatus = DocumentStatus.PENDING
    file_name: str | None = None
    content_type: str | None = None
    size_bytes: int | None = None
    uploaded_at: datetime | None = None
    verification_notes: str | None = None
    rejection_reason: str | None = None
    folder: str | None = None
    source_path: str | None = None

    @property
    def verified(self) -> bool:
        return self.status is DocumentStatus.VERIFIED

    @property
    def has_artifact(self) -> bool:
        return bool(self.url.strip())

    @property
    def is_required(self) -> bool:
        return self.document_type is not DocumentType.OTHER

    def with_review(self, review: ReviewState) -> DocumentRecord:
        return replace(
            self,
            status=review.status,
            verification_notes=review.verification_notes or self.verification_notes,
            rejection_reason=review.rejection_reason or self.rejection_reason,
        )

    def to_payload(self) -> dict[str, object]:
        """Serialise for callers; ``source_origin`` stays internal."""

        payload: dict[str, object] = {
            "driverId": self.driver_id,
            "documentType": self.document_type.value,
            "url": self.url,
            "status": self.status.value,
            "verified": self.verified,
        }
        optional: dict[str, object | None] = {
            "fileName": self.file_name,
            "contentType": self.content_type,
            "sizeBytes": self.size_bytes,
            "uploadedAt": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "verificationNotes": self.verification_notes,
            "rejectionReason": self.rejection_reason,
            "folder": self.folder,
            "sourcePath": self.source_path,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload
