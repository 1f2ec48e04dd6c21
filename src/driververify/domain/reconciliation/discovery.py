"""Concurrent, priority-ordered document discovery across every source.

All sources are queried at once, each under its own timeout. Their answers are then
merged strictly in trust order: the first source to supply an artifact for a type
owns that type, later sources only fill gaps. A failing source is recorded in the
diagnostics and never aborts discovery on its own.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from driververify.domain.model import (
    REQUIRED_DOCUMENT_TYPES,
    DocumentRecord,
    DocumentType,
    DriverVerificationStatus,
    ReviewState,
    SourceOrigin,
    source_rank,
)
from driververify.domain.verification.errors import (
    AdapterTimeout,
    AdapterUnavailable,
    AggregationInconsistency,
    DriverNotFound,
    ErrorCode,
)

from .aggregate import DocumentSummary, compute_status, index_by_type, summarize

if TYPE_CHECKING:
    from collections.abc import Sequence

    from driververify.domain.ports import DocumentSource, PartialDocumentSet

log = logging.getLogger(__name__)

DEFAULT_ADAPTER_TIMEOUT_SECONDS = 15.0


class SourceOutcome(StrEnum):
    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass(slots=True, kw_only=True)
class SourceDiagnostic:
    source: SourceOrigin
    outcome: SourceOutcome
    error_code: str | None = None
    error_message: str | None = None
    records: int = 0
    extras: int = 0
    filled: list[DocumentType] = field(default_factory=list)
    details: dict[str, object] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome is SourceOutcome.OK

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "source": self.source.value,
            "outcome": self.outcome.value,
            "records": self.records,
            "extras": self.extras,
            "filled": [document_type.value for document_type in self.filled],
        }
        if self.error_code is not None:
            payload["error"] = {"code": self.error_code, "message": self.error_message}
        if self.details:
            payload["details"] = self.details
        return payload


@dataclass(slots=True, kw_only=True)
class DiscoveryDiagnostics:
    sources: list[SourceDiagnostic] = field(default_factory=list)
    inconsistencies: list[AggregationInconsistency] = field(default_factory=list)
    hints_applied: list[DocumentType] = field(default_factory=list)

    @property
    def failed_sources(self) -> list[SourceOrigin]:
        return [diagnostic.source for diagnostic in self.sources if not diagnostic.succeeded]

    def for_source(self, source: SourceOrigin) -> SourceDiagnostic | None:
        for diagnostic in self.sources:
            if diagnostic.source is source:
                return diagnostic
        return None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "sources": [diagnostic.to_payload() for diagnostic in self.sources],
        }
        if self.inconsistencies:
            payload["inconsistencies"] = [
                {"code": problem.code.value, "message": problem.message}
                for problem in self.inconsistencies
            ]
        if self.hints_applied:
            payload["reviewHintsApplied"] = [item.value for item in self.hints_applied]
        return payload


@dataclass(slots=True, kw_only=True)
class DiscoveryResult:
    """Merged view of one driver's documents plus how it was assembled."""

    driver_id: str
    documents: dict[DocumentType, DocumentRecord]
    extras: list[DocumentRecord] = field(default_factory=list)
    diagnostics: DiscoveryDiagnostics = field(default_factory=DiscoveryDiagnostics)
    driver_name: str | None = None

    @property
    def missing_types(self) -> list[DocumentType]:
        return [
            document_type
            for document_type in REQUIRED_DOCUMENT_TYPES
            if document_type not in self.documents
        ]

    @property
    def conclusive(self) -> bool:
        """Whether the merged view can be trusted to recompute a stored status.

        It can when every source answered, or when every required type was filled
        anyway, so a failed source could not have changed the outcome.
        """

        return not self.diagnostics.failed_sources or not self.missing_types

    @property
    def computed_status(self) -> DriverVerificationStatus:
        return compute_status(self.documents)

    @property
    def summary(self) -> DocumentSummary:
        return summarize(self.documents)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "driverId": self.driver_id,
            "documents": {
                document_type.value: record.to_payload()
                for document_type, record in self.documents.items()
            },
            "extras": [record.to_payload() for record in self.extras],
            "computedStatus": self.computed_status.value,
            "summary": self.summary.to_payload(),
            "conclusive": self.conclusive,
            "diagnostics": self.diagnostics.to_payload(),
        }
        if self.driver_name:
            payload["driverName"] = self.driver_name
        return payload


@dataclass(slots=True)
class _SourceFailure:
    outcome: SourceOutcome
    code: str
    message: str


class DiscoveryOrchestrator:
    """Query every source concurrently and merge their answers by trust order."""

    def __init__(
        self,
        sources: Sequence[DocumentSource],
        *,
        timeout_seconds: float = DEFAULT_ADAPTER_TIMEOUT_SECONDS,
    ) -> None:
        origins = [source.origin for source in sources]
        if len(set(origins)) != len(origins):
            raise ValueError(f"Duplicate document sources: {origins}")
        self._sources = sorted(sources, key=lambda source: source_rank(source.origin))
        self._timeout_seconds = timeout_seconds

    async def discover(self, driver_id: str) -> DiscoveryResult:
        """Discover and merge the documents of ``driver_id``.

        Raises ``AdapterUnavailable`` when every source failed and ``DriverNotFound``
        when no source knows the driver or holds a document for it.
        """

        # Reads run in a shielded task so an abandoned discovery lets them finish.
        gathered = asyncio.gather(*(self._query(source, driver_id) for source in self._sources))
        outcomes = await asyncio.shield(gathered)

        diagnostics = DiscoveryDiagnostics()
        merged: dict[DocumentType, DocumentRecord] = {}
        hints: dict[DocumentType, tuple[SourceOrigin, ReviewState]] = {}
        extras: list[DocumentRecord] = []
        driver_name: str | None = None
        driver_known = False

        for source, outcome in zip(self._sources, outcomes, strict=True):
            if isinstance(outcome, _SourceFailure):
                diagnostics.sources.append(
                    SourceDiagnostic(
                        source=source.origin,
                        outcome=outcome.outcome,
                        error_code=outcome.code,
                        error_message=outcome.message,
                    )
                )
                continue

            filled: list[DocumentType] = []
            for document_type in REQUIRED_DOCUMENT_TYPES:
                record = outcome.records.get(document_type)
                if record is None or not record.has_artifact:
                    continue
                current = merged.get(document_type)
                if current is not None and current.has_artifact:
                    continue
                merged[document_type] = record
                filled.append(document_type)
            for document_type, hint in outcome.review_hints.items():
                hints.setdefault(document_type, (outcome.source, hint))
            extras.extend(outcome.extras)
            driver_known = driver_known or outcome.driver_found or not outcome.is_empty
            driver_name = driver_name or outcome.driver_name
            diagnostics.sources.append(
                SourceDiagnostic(
                    source=source.origin,
                    outcome=SourceOutcome.OK,
                    records=len(outcome.records),
                    extras=len(outcome.extras),
                    filled=filled,
                    details=dict(outcome.details),
                )
            )

        if len(diagnostics.failed_sources) == len(self._sources):
            raise AdapterUnavailable(f"No document source reachable for driver {driver_id}")
        if not driver_known:
            raise DriverNotFound(driver_id)

        for document_type, (hint_source, hint) in hints.items():
            record = merged.get(document_type)
            if record is None:
                continue
            if source_rank(hint_source) < source_rank(record.source_origin):
                merged[document_type] = record.with_review(hint)
                diagnostics.hints_applied.append(document_type)

        documents, problems = index_by_type(merged)
        diagnostics.inconsistencies.extend(problems)

        if diagnostics.failed_sources:
            log.warning(
                "Discovery for driver %s degraded; failed sources: %s",
                driver_id,
                ", ".join(source.value for source in diagnostics.failed_sources),
            )
        return DiscoveryResult(
            driver_id=driver_id,
            documents=documents,
            extras=extras,
            diagnostics=diagnostics,
            driver_name=driver_name,
        )

    async def _query(
        self, source: DocumentSource, driver_id: str
    ) -> PartialDocumentSet | _SourceFailure:
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await source.discover_for_driver(driver_id)
        except TimeoutError:
            log.warning(
                "Source %s timed out after %.1fs for driver %s",
                source.origin,
                self._timeout_seconds,
                driver_id,
            )
            error = AdapterTimeout(
                f"{source.origin} did not answer within {self._timeout_seconds:g}s",
                source=source.origin,
            )
            return _SourceFailure(SourceOutcome.TIMEOUT, error.code.value, error.message)
        except AdapterUnavailable as exc:
            log.warning("Source %s unavailable for driver %s: %s", source.origin, driver_id, exc)
            return _SourceFailure(SourceOutcome.FAILED, exc.code.value, exc.message)
        except Exception as exc:
            log.exception("Source %s failed unexpectedly for driver %s", source.origin, driver_id)
            return _SourceFailure(
                SourceOutcome.FAILED,
                ErrorCode.ADAPTER_UNAVAILABLE.value,
                f"{source.origin} failed: {type(exc).__name__}",
            )
