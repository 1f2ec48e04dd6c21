from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from driververify.adapters.primary_api import PrimaryApiClient
from driververify.app import (
    build_verification_service,
    discover_driver_documents,
    reject_driver,
    resync_driver,
)
from driververify.config.api import PrimaryApiConfig
from driververify.config.discovery import DiscoveryConfig
from driververify.config.http_resilience import ResilienceConfig
from driververify.domain.model import (
    REQUIRED_DOCUMENT_TYPES,
    ComputedStatus,
    DriverVerificationStatus,
    OverrideStatus,
    SourceOrigin,
)
from driververify.domain.ports import StoredDriverProfile
from driververify.domain.verification.resync import ServerSync
from tests.support.http import make_client_factory
from tests.support.verification import FakeSource

if TYPE_CHECKING:
    from collections.abc import Callable

    from driververify.adapters.sqlalchemy import (
        SqlAlchemyDocumentStore,
        SqlAlchemyDocumentStoreUnitOfWork,
    )

BASE_URL = "https://api.example.test/v1/"


def _primary_api(requests: list[httpx.Request]) -> PrimaryApiClient:
    documents = {
        document_type.value: {
            "url": f"https://files.example/{document_type.value}.jpg",
            "status": "verified",
        }
        for document_type in REQUIRED_DOCUMENT_TYPES
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(
                200, json={"success": True, "data": {"driverId": "d1", "documents": documents}}
            )
        return httpx.Response(200, json={"success": True})

    config = PrimaryApiConfig(
        base_url=BASE_URL,
        token=None,
        resilience=ResilienceConfig(name="test", base_url=BASE_URL),
    )
    return PrimaryApiClient(
        config=config, client_factory=make_client_factory(handler, requests=requests)
    )


def test_resync_then_reject_through_sync_entry_points(
    sqlite_unit_of_work: Callable[[], SqlAlchemyDocumentStoreUnitOfWork],
    document_store: SqlAlchemyDocumentStore,
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.profiles.add(StoredDriverProfile(driver_id="d1", display_name="Asha"))
        uow.commit()
    requests: list[httpx.Request] = []
    service = build_verification_service(
        primary_api=_primary_api(requests),
        blob_storage=FakeSource(SourceOrigin.STORAGE),
        document_store=document_store,
        config=DiscoveryConfig(adapter_timeout_seconds=2.0, admin_id="ops-1"),
    )

    resynced = resync_driver("d1", service=service)

    assert resynced.success is True
    assert resynced.data is not None
    assert resynced.data.server_sync is ServerSync.OK
    assert asyncio.run(document_store.load_status("d1")) == ComputedStatus(
        value=DriverVerificationStatus.VERIFIED
    )

    rejected = reject_driver("d1", "forged licence", service=service)
    viewed = discover_driver_documents("d1", service=service)

    assert rejected.success is True
    stored = asyncio.run(document_store.load_status("d1"))
    assert isinstance(stored, OverrideStatus)
    assert stored.value is DriverVerificationStatus.REJECTED
    assert stored.set_by == "ops-1"
    assert stored.reason == "forged licence"
    assert viewed.data is not None
    assert viewed.data.status == stored
    assert viewed.data.driver.name == "Asha"
    assert viewed.data.driver.override == stored
    assert viewed.data.to_payload()["isVerified"] is False
    assert [request.url.path for request in requests if request.method == "POST"] == [
        "/v1/drivers/d1/sync-status",
        "/v1/drivers/d1/verify",
    ]
