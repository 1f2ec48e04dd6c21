"""HTTP client for the primary driver API (document source and write gateway)."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from driververify.adapters.http_resilience import ClientFactory, default_client_factory
from driververify.config.api import PrimaryApiConfig, get_primary_api_config
from driververify.domain.model import DocumentStatus, DriverDecision, SourceOrigin
from driververify.domain.ports import (
    DocumentSource,
    PartialDocumentSet,
    PrimaryApiGateway,
)
from driververify.domain.reconciliation.normalize import normalize_document_map
from driververify.domain.verification.errors import AdapterUnavailable, DriverNotFound

from .schema import (
    ApiEnvelope,
    DocumentVerificationRequest,
    DriverDecisionRequest,
    DriverDocumentsData,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from driververify.adapters.http_resilience import ResilientClient
    from driververify.domain.model import DocumentType

log = getLogger(__name__)


class PrimaryApiError(AdapterUnavailable):
    """Raised when the primary API cannot be reached or reports a failure."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, source=SourceOrigin.API)
        self.status_code = status_code


def _segment(value: str) -> str:
    return quote(value, safe="")


@dataclass(slots=True)
class PrimaryApiClient:
    config: PrimaryApiConfig = field(default_factory=get_primary_api_config)
    client_factory: ClientFactory = field(default=default_client_factory)

    @property
    def origin(self) -> SourceOrigin:
        return SourceOrigin.API

    # -- reads -------------------------------------------------------------------------

    async def discover_for_driver(self, driver_id: str) -> PartialDocumentSet:
        path = f"drivers/{_segment(driver_id)}/documents"
        async with self.client_factory(self.config.resilience) as client:
            response = await self._send(client, "GET", path)
        if response.status_code == httpx.codes.NOT_FOUND:
            log.info("Primary API does not know driver %s", driver_id)
            return PartialDocumentSet(source=SourceOrigin.API, details={"notFound": True})

        envelope = self._parse_envelope(response, path)
        if envelope.data is None:
            return PartialDocumentSet(source=SourceOrigin.API, driver_found=True)
        try:
            data = DriverDocumentsData.model_validate(envelope.data)
        except ValidationError as exc:
            raise PrimaryApiError(f"Unexpected documents payload from {path}") from exc

        normalized = normalize_document_map(data.documents, SourceOrigin.API, driver_id=driver_id)
        return PartialDocumentSet(
            source=SourceOrigin.API,
            records=normalized.records,
            extras=normalized.extras,
            review_hints=normalized.review_hints,
            driver_found=True,
            driver_name=data.driver_name,
            details={"documentKeys": sorted(data.documents)},
        )

    # -- writes ------------------------------------------------------------------------

    async def verify_document(
        self,
        driver_id: str,
        document_type: DocumentType,
        *,
        status: DocumentStatus,
        comments: str,
        rejection_reason: str | None = None,
    ) -> Mapping[str, object]:
        body = DocumentVerificationRequest(
            status=status.value,
            comments=comments,
            rejection_reason=rejection_reason if status is DocumentStatus.REJECTED else None,
        )
        path = (
            f"drivers/{_segment(driver_id)}/documents/{_segment(document_type.value)}/verify"
        )
        return await self._post(path, driver_id, body.model_dump(by_alias=True, exclude_none=True))

    async def decide_driver(
        self,
        driver_id: str,
        *,
        decision: DriverDecision,
        reason: str | None = None,
        comments: str | None = None,
    ) -> Mapping[str, object]:
        body = DriverDecisionRequest(status=decision.value, reason=reason, comments=comments)
        path = f"drivers/{_segment(driver_id)}/verify"
        return await self._post(path, driver_id, body.model_dump(exclude_none=True))

    async def sync_driver_status(self, driver_id: str) -> Mapping[str, object]:
        return await self._post(f"drivers/{_segment(driver_id)}/sync-status", driver_id, None)

    async def sync_all_drivers_status(self) -> Mapping[str, object]:
        return await self._post("sync-all-drivers-status", None, None)

    # -- plumbing ----------------------------------------------------------------------

    async def _post(
        self, path: str, driver_id: str | None, body: dict[str, object] | None
    ) -> Mapping[str, object]:
        async with self.client_factory(self.config.resilience) as client:
            if body is None:
                response = await self._send(client, "POST", path)
            else:
                response = await self._send(client, "POST", path, json=body)
        if response.status_code == httpx.codes.NOT_FOUND and driver_id is not None:
            raise DriverNotFound(driver_id)
        envelope = self._parse_envelope(response, path)
        return envelope.model_dump(exclude_none=True)

    async def _send(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        *,
        json: object | None = None,
    ) -> httpx.Response:
        try:
            if json is None:
                return await client.request(method, path)
            return await client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise PrimaryApiError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise PrimaryApiError(f"{method} {path} failed: {type(exc).__name__}") from exc

    def _parse_envelope(self, response: httpx.Response, path: str) -> ApiEnvelope:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.warning("Primary API %s answered HTTP %s", path, response.status_code)
            raise PrimaryApiError(
                f"{path} answered HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc
        try:
            envelope = ApiEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PrimaryApiError(f"Malformed response from {path}") from exc
        if not envelope.success:
            log.warning("Primary API %s reported failure: %s", path, envelope.error_message)
            raise PrimaryApiError(
                f"{path} reported failure: {envelope.error_message}",
                status_code=response.status_code,
            )
        return envelope


if TYPE_CHECKING:
    _source_check: DocumentSource = PrimaryApiClient()
    _gateway_check: PrimaryApiGateway = PrimaryApiClient()
