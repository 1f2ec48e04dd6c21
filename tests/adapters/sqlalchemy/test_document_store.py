from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

from driververify.adapters.sqlalchemy import SqlAlchemyDocumentStore
from driververify.domain.model import (
    ComputedStatus,
    DocumentStatus,
    DocumentType,
    DriverVerificationStatus,
    OverrideStatus,
    ReviewState,
    SourceOrigin,
)
from driververify.domain.ports import StoredDriverProfile, StoredVerificationRequest
from tests.support.verification import FIXED_NOW, fixed_clock

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from driververify.adapters.sqlalchemy import SqlAlchemyDocumentStoreUnitOfWork

type UowFactory = Callable[[], SqlAlchemyDocumentStoreUnitOfWork]


def _seed(
    uow_factory: UowFactory,
    *,
    profiles: Sequence[StoredDriverProfile] = (),
    requests: Sequence[StoredVerificationRequest] = (),
) -> None:
    with uow_factory() as uow:
        for profile in profiles:
            uow.repositories.profiles.add(profile)
        for request in requests:
            uow.repositories.verification_requests.add(request)
        uow.commit()


def _request(
    driver_id: str, documents: dict[str, object], *, age_days: int = 0
) -> StoredVerificationRequest:
    return StoredVerificationRequest(
        id=uuid4(),
        driver_id=driver_id,
        created_at=FIXED_NOW - timedelta(days=age_days),
        documents=documents,
        status="submitted",
    )


def test_discovery_merges_layers_most_specific_first(sqlite_unit_of_work: UowFactory) -> None:
    _seed(
        sqlite_unit_of_work,
        profiles=[
            StoredDriverProfile(
                driver_id="d1",
                payload={
                    "personalInfo": {"name": "Asha Rao"},
                    "driver": {
                        "documents": {
                            "drivingLicense": {"url": "https://files.example/old-dl.jpg"},
                            "bikeInsurance": {"url": "https://files.example/ins.pdf"},
                        }
                    },
                    "documents": {
                        "profilePhoto": {"url": "https://files.example/me.jpg"},
                        "rcBook": {"status": "verified"},
                    },
                },
            )
        ],
        requests=[
            _request("d1", {"license": {"url": "https://files.example/stale.jpg"}}, age_days=9),
            _request(
                "d1",
                {"license": {"url": "https://files.example/new-dl.jpg", "status": "approved"}},
            ),
        ],
    )
    store = SqlAlchemyDocumentStore(sqlite_unit_of_work)

    partial = asyncio.run(store.discover_for_driver("d1"))

    assert partial.source is SourceOrigin.DOCUMENT_STORE
    assert partial.driver_found is True
    assert partial.driver_name == "Asha Rao"
    license_record = partial.records[DocumentType.DRIVING_LICENSE]
    assert license_record.url == "https://files.example/new-dl.jpg"
    assert license_record.status is DocumentStatus.VERIFIED
    assert set(partial.records) == {
        DocumentType.DRIVING_LICENSE,
        DocumentType.BIKE_INSURANCE,
        DocumentType.PROFILE_PHOTO,
    }
    assert partial.review_hints[DocumentType.RC_BOOK].status is DocumentStatus.VERIFIED
    assert partial.details["layers"] == ["verificationRequest", "driver.documents", "documents"]


def test_discovery_unknown_driver(document_store: SqlAlchemyDocumentStore) -> None:
    partial = asyncio.run(document_store.discover_for_driver("ghost"))

    assert partial.driver_found is False
    assert partial.is_empty
    assert asyncio.run(document_store.driver_exists("ghost")) is False


def test_review_is_visible_on_next_discovery(sqlite_unit_of_work: UowFactory) -> None:
    _seed(
        sqlite_unit_of_work,
        profiles=[
            StoredDriverProfile(
                driver_id="d1",
                display_name="Asha",
                payload={"driver": {"documents": {"rc": {"url": "https://files.example/rc.jpg"}}}},
            )
        ],
        requests=[_request("d1", {"rcBook": {"url": "https://files.example/rc.jpg"}})],
    )
    store = SqlAlchemyDocumentStore(sqlite_unit_of_work, clock=fixed_clock)
    review = ReviewState(status=DocumentStatus.REJECTED, rejection_reason="expired")

    written = asyncio.run(
        store.record_document_review("d1", DocumentType.RC_BOOK, review, reviewed_by="admin-7")
    )
    partial = asyncio.run(store.discover_for_driver("d1"))

    assert written is True
    record = partial.records[DocumentType.RC_BOOK]
    assert record.status is DocumentStatus.REJECTED
    assert record.rejection_reason == "expired"
    with sqlite_unit_of_work() as uow:
        profile = uow.repositories.profiles.get("d1")
        request = uow.repositories.verification_requests.latest_for_driver("d1")
    assert profile is not None
    assert request is not None
    profile_entry = profile.payload["driver"]["documents"]["rc"]  # type: ignore[index]
    assert profile_entry["reviewedBy"] == "admin-7"
    assert profile_entry["reviewedAt"] == FIXED_NOW.isoformat()
    assert profile_entry["verified"] is False
    assert request.documents["rcBook"]["status"] == "rejected"  # type: ignore[index]


def test_review_updates_root_documents_entry(sqlite_unit_of_work: UowFactory) -> None:
    _seed(
        sqlite_unit_of_work,
        profiles=[
            StoredDriverProfile(
                driver_id="d1",
                payload={
                    "documents": {
                        "drivingLicense": {
                            "url": "https://files.example/dl.jpg",
                            "status": "pending",
                        }
                    }
                },
            )
        ],
        requests=[_request("d1", {"rcBook": {"url": "https://files.example/rc.jpg"}})],
    )
    store = SqlAlchemyDocumentStore(sqlite_unit_of_work, clock=fixed_clock)
    review = ReviewState(status=DocumentStatus.VERIFIED)

    written = asyncio.run(
        store.record_document_review(
            "d1", DocumentType.DRIVING_LICENSE, review, reviewed_by="admin-7"
        )
    )
    partial = asyncio.run(store.discover_for_driver("d1"))

    assert written is True
    record = partial.records[DocumentType.DRIVING_LICENSE]
    assert record.url == "https://files.example/dl.jpg"
    assert record.status is DocumentStatus.VERIFIED
    with sqlite_unit_of_work() as uow:
        profile = uow.repositories.profiles.get("d1")
        request = uow.repositories.verification_requests.latest_for_driver("d1")
    assert profile is not None
    assert request is not None
    assert "driver" not in profile.payload
    root_entry = profile.payload["documents"]["drivingLicense"]  # type: ignore[index]
    assert root_entry["reviewedBy"] == "admin-7"
    assert "drivingLicense" not in request.documents


def test_review_without_profile_or_entry_writes_nothing(
    sqlite_unit_of_work: UowFactory,
) -> None:
    _seed(sqlite_unit_of_work, requests=[_request("d2", {"aadhaarCard": {"url": "x"}})])
    store = SqlAlchemyDocumentStore(sqlite_unit_of_work)
    review = ReviewState(status=DocumentStatus.VERIFIED)

    assert asyncio.run(
        store.record_document_review("d2", DocumentType.RC_BOOK, review, reviewed_by="admin")
    ) is False
    assert asyncio.run(
        store.record_document_review("d9", DocumentType.RC_BOOK, review, reviewed_by="admin")
    ) is False


def test_decision_override_and_clear(
    sqlite_unit_of_work: UowFactory, document_store: SqlAlchemyDocumentStore
) -> None:
    override = OverrideStatus(
        value=DriverVerificationStatus.REJECTED,
        set_by="admin-7",
        set_at=datetime(2025, 3, 1, 12, 0, tzinfo=UTC),
        reason="forged licence",
    )

    asyncio.run(document_store.record_driver_decision("d1", override))
    loaded = asyncio.run(document_store.load_status("d1"))
    cleared = asyncio.run(document_store.clear_override("d1", cleared_by="admin-8"))
    cleared_again = asyncio.run(document_store.clear_override("d1", cleared_by="admin-8"))

    assert loaded == override
    assert cleared == override
    assert cleared_again is None
    assert asyncio.run(document_store.load_status("d1")) is None
    with sqlite_unit_of_work() as uow:
        events = uow.repositories.statuses.list_events("d1")
    assert [event["event"] for event in events] == ["override_set", "override_cleared"]
    assert events[1]["actor"] == "admin-8"
    assert events[0]["reason"] == "forged licence"


def test_save_status_records_recomputation(
    sqlite_unit_of_work: UowFactory, document_store: SqlAlchemyDocumentStore
) -> None:
    pending = ComputedStatus(value=DriverVerificationStatus.PENDING)
    verified = ComputedStatus(value=DriverVerificationStatus.VERIFIED)

    asyncio.run(document_store.save_status("d1", pending))
    asyncio.run(document_store.save_status("d1", verified))

    assert asyncio.run(document_store.load_status("d1")) == verified
    assert asyncio.run(document_store.clear_override("d1", cleared_by="admin")) is None
    with sqlite_unit_of_work() as uow:
        events = uow.repositories.statuses.list_events("d1")
    assert [(event["event"], event["actor"]) for event in events] == [
        ("status_recomputed", "system"),
        ("status_recomputed", "system"),
    ]


def test_list_driver_ids_only_returns_drivers(sqlite_unit_of_work: UowFactory) -> None:
    _seed(
        sqlite_unit_of_work,
        profiles=[
            StoredDriverProfile(driver_id="d2"),
            StoredDriverProfile(driver_id="c1", user_type="customer"),
            StoredDriverProfile(driver_id="d1"),
        ],
    )
    store = SqlAlchemyDocumentStore(sqlite_unit_of_work)

    assert asyncio.run(store.list_driver_ids()) == ["d1", "d2"]
    assert asyncio.run(store.driver_exists("c1")) is True
