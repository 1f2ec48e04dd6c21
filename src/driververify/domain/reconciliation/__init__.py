"""Reconciliation of the three document sources into one view per driver.

1) classify storage objects onto canonical document types
2) normalize each source's raw shape into ``DocumentRecord`` values
3) merge the sources in trust order (discovery)
4) aggregate the merged documents into a driver status
"""

from __future__ import annotations

from .aggregate import (
    DocumentSummary,
    aggregate,
    compute_status,
    index_by_type,
    resolve_status,
    summarize,
)
from .classify import CANONICAL_FOLDERS, Classification, MatchSource, classify, classify_detail
from .discovery import (
    DiscoveryDiagnostics,
    DiscoveryOrchestrator,
    DiscoveryResult,
    SourceDiagnostic,
    SourceOutcome,
)
from .normalize import NormalizedDocuments, normalize, normalize_document_map

__all__ = [
    "CANONICAL_FOLDERS",
    "Classification",
    "DiscoveryDiagnostics",
    "DiscoveryOrchestrator",
    "DiscoveryResult",
    "DocumentSummary",
    "MatchSource",
    "NormalizedDocuments",
    "SourceDiagnostic",
    "SourceOutcome",
    "aggregate",
    "classify",
    "classify_detail",
    "compute_status",
    "index_by_type",
    "normalize",
    "normalize_document_map",
    "resolve_status",
    "summarize",
]
