from __future__ import annotations

import asyncio

import pytest

from driververify.domain.model import (
    DocumentStatus,
    DocumentType,
    ReviewState,
    SourceOrigin,
)
from driververify.domain.ports import PartialDocumentSet
from driververify.domain.reconciliation.discovery import DiscoveryOrchestrator, SourceOutcome
from driververify.domain.verification.errors import (
    AdapterUnavailable,
    DriverNotFound,
    ErrorCode,
)
from tests.support.verification import FakeSource, all_types, make_partial


def _sources() -> tuple[FakeSource, FakeSource, FakeSource]:
    return (
        FakeSource(SourceOrigin.API),
        FakeSource(SourceOrigin.DOCUMENT_STORE),
        FakeSource(SourceOrigin.STORAGE),
    )


def test_higher_priority_source_owns_a_type() -> None:
    api, store, storage = _sources()
    api.answers["d1"] = make_partial(
        SourceOrigin.API,
        {DocumentType.DRIVING_LICENSE: DocumentStatus.VERIFIED},
        driver_id="d1",
    )
    store.answers["d1"] = make_partial(
        SourceOrigin.DOCUMENT_STORE,
        {
            DocumentType.DRIVING_LICENSE: DocumentStatus.REJECTED,
            DocumentType.RC_BOOK: DocumentStatus.PENDING,
        },
        driver_id="d1",
    )
    storage.answers["d1"] = make_partial(
        SourceOrigin.STORAGE, all_types(DocumentStatus.PENDING), driver_id="d1"
    )
    # Storage is listed first on purpose; priority comes from the origin.
    orchestrator = DiscoveryOrchestrator([storage, store, api])

    result = asyncio.run(orchestrator.discover("d1"))

    documents = result.documents
    assert documents[DocumentType.DRIVING_LICENSE].source_origin is SourceOrigin.API
    assert documents[DocumentType.DRIVING_LICENSE].status is DocumentStatus.VERIFIED
    assert documents[DocumentType.RC_BOOK].source_origin is SourceOrigin.DOCUMENT_STORE
    assert documents[DocumentType.PROFILE_PHOTO].source_origin is SourceOrigin.STORAGE
    assert result.conclusive is True
    storage_diag = result.diagnostics.for_source(SourceOrigin.STORAGE)
    assert storage_diag is not None
    assert DocumentType.DRIVING_LICENSE not in storage_diag.filled


def test_failed_source_is_recorded_and_discovery_continues() -> None:
    api, store, storage = _sources()
    api.failures["d1"] = AdapterUnavailable("boom", source=SourceOrigin.API)
    store.answers["d1"] = make_partial(
        SourceOrigin.DOCUMENT_STORE,
        {DocumentType.AADHAAR_CARD: DocumentStatus.VERIFIED},
        driver_id="d1",
    )
    orchestrator = DiscoveryOrchestrator([api, store, storage])

    result = asyncio.run(orchestrator.discover("d1"))

    assert set(result.documents) == {DocumentType.AADHAAR_CARD}
    assert result.diagnostics.failed_sources == [SourceOrigin.API]
    api_diag = result.diagnostics.for_source(SourceOrigin.API)
    assert api_diag is not None
    assert api_diag.error_code == ErrorCode.ADAPTER_UNAVAILABLE.value
    assert result.conclusive is False


def test_slow_source_times_out() -> None:
    api, store, storage = _sources()
    api.answers["d1"] = make_partial(
        SourceOrigin.API, all_types(DocumentStatus.PENDING), driver_id="d1"
    )
    storage.delays["d1"] = 5.0
    orchestrator = DiscoveryOrchestrator([api, store, storage], timeout_seconds=0.05)

    result = asyncio.run(orchestrator.discover("d1"))

    storage_diag = result.diagnostics.for_source(SourceOrigin.STORAGE)
    assert storage_diag is not None
    assert storage_diag.outcome is SourceOutcome.TIMEOUT
    assert storage_diag.error_code == ErrorCode.ADAPTER_TIMEOUT.value
    # Every required type was already filled, so the missing answer changes nothing.
    assert result.conclusive is True


def test_unexpected_source_error_is_contained() -> None:
    api, store, storage = _sources()
    api.failures["d1"] = RuntimeError("bug")
    store.answers["d1"] = make_partial(SourceOrigin.DOCUMENT_STORE, {}, driver_id="d1")
    orchestrator = DiscoveryOrchestrator([api, store, storage])

    result = asyncio.run(orchestrator.discover("d1"))

    api_diag = result.diagnostics.for_source(SourceOrigin.API)
    assert api_diag is not None
    assert api_diag.outcome is SourceOutcome.FAILED
    assert result.documents == {}


def test_all_sources_failing_raises_adapter_unavailable() -> None:
    sources = _sources()
    for source in sources:
        source.failures["d1"] = AdapterUnavailable("down", source=source.origin)
    orchestrator = DiscoveryOrchestrator(list(sources))

    with pytest.raises(AdapterUnavailable):
        asyncio.run(orchestrator.discover("d1"))


def test_unknown_driver_raises_driver_not_found() -> None:
    orchestrator = DiscoveryOrchestrator(list(_sources()))

    with pytest.raises(DriverNotFound) as excinfo:
        asyncio.run(orchestrator.discover("ghost"))

    assert excinfo.value.code is ErrorCode.DRIVER_NOT_FOUND


def test_review_hint_applies_to_storage_artifact() -> None:
    api, store, storage = _sources()
    store.answers["d1"] = make_partial(
        SourceOrigin.DOCUMENT_STORE,
        {},
        driver_id="d1",
        review_hints={
            DocumentType.BIKE_INSURANCE: ReviewState(
                status=DocumentStatus.REJECTED, rejection_reason="expired"
            )
        },
    )
    storage.answers["d1"] = make_partial(
        SourceOrigin.STORAGE,
        {DocumentType.BIKE_INSURANCE: DocumentStatus.PENDING},
        driver_id="d1",
        driver_found=False,
    )
    orchestrator = DiscoveryOrchestrator([api, store, storage])

    result = asyncio.run(orchestrator.discover("d1"))

    record = result.documents[DocumentType.BIKE_INSURANCE]
    assert record.source_origin is SourceOrigin.STORAGE
    assert record.status is DocumentStatus.REJECTED
    assert record.rejection_reason == "expired"
    assert result.diagnostics.hints_applied == [DocumentType.BIKE_INSURANCE]


def test_storage_only_documents_still_identify_driver() -> None:
    api, store, storage = _sources()
    storage.answers["d1"] = make_partial(
        SourceOrigin.STORAGE,
        {DocumentType.PROFILE_PHOTO: DocumentStatus.PENDING},
        driver_id="d1",
        driver_found=False,
    )
    orchestrator = DiscoveryOrchestrator([api, store, storage])

    result = asyncio.run(orchestrator.discover("d1"))

    assert set(result.documents) == {DocumentType.PROFILE_PHOTO}
    payload = result.to_payload()
    assert payload["computedStatus"] == "pending"
    assert payload["summary"]["missing"] == [  # type: ignore[index]
        "drivingLicense",
        "aadhaarCard",
        "bikeInsurance",
        "rcBook",
    ]


def test_duplicate_source_origins_are_rejected() -> None:
    with pytest.raises(ValueError, match="Duplicate"):
        DiscoveryOrchestrator([FakeSource(SourceOrigin.API), FakeSource(SourceOrigin.API)])


def test_empty_partial_set_is_reported_ok() -> None:
    api, store, storage = _sources()
    api.answers["d1"] = PartialDocumentSet(source=SourceOrigin.API, driver_found=True)
    orchestrator = DiscoveryOrchestrator([api, store, storage])

    result = asyncio.run(orchestrator.discover("d1"))

    assert all(diag.outcome is SourceOutcome.OK for diag in result.diagnostics.sources)
    assert result.documents == {}
