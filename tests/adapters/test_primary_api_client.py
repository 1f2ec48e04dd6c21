from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import httpx
import pytest

from driververify.adapters.primary_api import PrimaryApiClient, PrimaryApiError
from driververify.config.api import PrimaryApiConfig
from driververify.config.http_resilience import ResilienceConfig
from driververify.domain.model import (
    DocumentStatus,
    DocumentType,
    DriverDecision,
    SourceOrigin,
)
from driververify.domain.verification.errors import DriverNotFound
from tests.support.http import make_client_factory

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_URL = "https://api.example.test/v1/"


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    requests: list[httpx.Request] | None = None,
) -> PrimaryApiClient:
    config = PrimaryApiConfig(
        base_url=BASE_URL,
        token=None,
        resilience=ResilienceConfig(name="test", base_url=BASE_URL),
    )
    return PrimaryApiClient(
        config=config, client_factory=make_client_factory(handler, requests=requests)
    )


def test_discover_parses_documents_envelope() -> None:
    payload = {
        "success": True,
        "data": {
            "driverId": "d1",
            "driverName": "Ravi Kumar",
            "documents": {
                "drivingLicense": {
                    "downloadURL": "https://files.example/dl.jpg",
                    "verificationStatus": "approved",
                    "uploadedAt": "2025-01-10T08:00:00Z",
                },
                "aadhaar": {"url": "https://files.example/aadhaar.pdf", "verified": True},
                "rcBook": {"status": "rejected", "rejectionReason": "blurry"},
                "panCard": {"url": "https://files.example/pan.jpg"},
            },
        },
    }
    requests: list[httpx.Request] = []
    client = _client(lambda _request: httpx.Response(200, json=payload), requests)

    partial = asyncio.run(client.discover_for_driver("d1"))

    assert requests[0].method == "GET"
    assert requests[0].url.path == "/v1/drivers/d1/documents"
    assert partial.source is SourceOrigin.API
    assert partial.driver_found is True
    assert partial.driver_name == "Ravi Kumar"
    assert set(partial.records) == {DocumentType.DRIVING_LICENSE, DocumentType.AADHAAR_CARD}
    license_record = partial.records[DocumentType.DRIVING_LICENSE]
    assert license_record.status is DocumentStatus.VERIFIED
    assert license_record.uploaded_at is not None
    assert partial.records[DocumentType.AADHAAR_CARD].verified is True
    assert partial.review_hints[DocumentType.RC_BOOK].status is DocumentStatus.REJECTED
    [extra] = partial.extras
    assert extra.document_type is DocumentType.OTHER
    assert partial.details["documentKeys"] == ["aadhaar", "drivingLicense", "panCard", "rcBook"]


def test_discover_unknown_driver_is_an_empty_answer() -> None:
    client = _client(lambda _request: httpx.Response(404, json={"success": False}))

    partial = asyncio.run(client.discover_for_driver("ghost"))

    assert partial.driver_found is False
    assert partial.is_empty
    assert partial.details == {"notFound": True}


def test_discover_server_error_raises() -> None:
    client = _client(lambda _request: httpx.Response(500, text="boom"))

    with pytest.raises(PrimaryApiError) as excinfo:
        asyncio.run(client.discover_for_driver("d1"))

    assert excinfo.value.status_code == 500
    assert excinfo.value.source is SourceOrigin.API


def test_discover_reported_failure_raises() -> None:
    body = {"success": False, "error": {"code": "E_DB", "message": "database offline"}}
    client = _client(lambda _request: httpx.Response(200, json=body))

    with pytest.raises(PrimaryApiError, match="database offline"):
        asyncio.run(client.discover_for_driver("d1"))


def test_discover_malformed_body_raises() -> None:
    client = _client(lambda _request: httpx.Response(200, text="<html>"))

    with pytest.raises(PrimaryApiError, match="Malformed"):
        asyncio.run(client.discover_for_driver("d1"))


def test_discover_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(PrimaryApiError, match="ConnectError"):
        asyncio.run(client.discover_for_driver("d1"))


def test_verify_document_posts_review_body() -> None:
    requests: list[httpx.Request] = []
    client = _client(lambda _request: httpx.Response(200, json={"success": True}), requests)

    result = asyncio.run(
        client.verify_document(
            "d1",
            DocumentType.RC_BOOK,
            status=DocumentStatus.REJECTED,
            comments="expired",
            rejection_reason="expired",
        )
    )

    [request] = requests
    assert request.method == "POST"
    assert request.url.path == "/v1/drivers/d1/documents/rcBook/verify"
    assert json.loads(request.content) == {
        "status": "rejected",
        "comments": "expired",
        "rejectionReason": "expired",
    }
    assert result == {"success": True}


def test_verify_document_drops_reason_for_approval() -> None:
    requests: list[httpx.Request] = []
    client = _client(lambda _request: httpx.Response(200, json={"success": True}), requests)

    asyncio.run(
        client.verify_document(
            "d1",
            DocumentType.PROFILE_PHOTO,
            status=DocumentStatus.VERIFIED,
            comments="ok",
            rejection_reason="ignored",
        )
    )

    assert json.loads(requests[0].content) == {"status": "verified", "comments": "ok"}


def test_decide_driver_unknown_driver_raises_not_found() -> None:
    client = _client(lambda _request: httpx.Response(404, json={"success": False}))

    with pytest.raises(DriverNotFound):
        asyncio.run(client.decide_driver("ghost", decision=DriverDecision.APPROVED))


def test_decide_driver_posts_decision() -> None:
    requests: list[httpx.Request] = []
    client = _client(lambda _request: httpx.Response(200, json={"success": True}), requests)

    asyncio.run(
        client.decide_driver("d1", decision=DriverDecision.REJECTED, reason="fake documents")
    )

    assert requests[0].url.path == "/v1/drivers/d1/verify"
    assert json.loads(requests[0].content) == {"status": "rejected", "reason": "fake documents"}


def test_sync_endpoints() -> None:
    requests: list[httpx.Request] = []
    client = _client(lambda _request: httpx.Response(200, json={"success": True}), requests)

    asyncio.run(client.sync_driver_status("d 1"))
    asyncio.run(client.sync_all_drivers_status())

    assert [request.url.raw_path for request in requests] == [
        b"/v1/drivers/d%201/sync-status",
        b"/v1/sync-all-drivers-status",
    ]
