"""Ports for reading document candidates from external sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from driververify.domain.model import (
        DocumentRecord,
        DocumentType,
        ReviewState,
        SourceOrigin,
    )


@dataclass(slots=True, kw_only=True)
class PartialDocumentSet:
    """What one source knows about one driver's documents.

    ``records`` holds at most one normalized record per type. ``review_hints`` carries
    review state the source has for types it holds no artifact for.
    """

    source: SourceOrigin
    records: dict[DocumentType, DocumentRecord] = field(default_factory=dict)
    extras: list[DocumentRecord] = field(default_factory=list)
    review_hints: dict[DocumentType, ReviewState] = field(default_factory=dict)
    driver_found: bool = False
    driver_name: str | None = None
    details: dict[str, object] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.records and not self.extras


@runtime_checkable
class DocumentSource(Protocol):
    """One adapter in the discovery chain."""

    @property
    def origin(self) -> SourceOrigin: ...

    async def discover_for_driver(self, driver_id: str) -> PartialDocumentSet: ...


__all__ = ["DocumentSource", "PartialDocumentSet"]
