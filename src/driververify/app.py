"""Application wiring and synchronous entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from driververify.adapters.blob_storage import BlobStorageSource
from driververify.adapters.primary_api import PrimaryApiClient
from driververify.adapters.sqlalchemy import (
    SqlAlchemyDocumentStore,
    SqlAlchemyDocumentStoreUnitOfWork,
)
from driververify.adapters.sqlalchemy.unit_of_work import is_started, startup
from driververify.config.discovery import DiscoveryConfig, get_discovery_config
from driververify.domain.reconciliation.discovery import DiscoveryOrchestrator
from driververify.domain.verification.commands import DriverVerificationService

if TYPE_CHECKING:
    from driververify.domain.ports import DocumentSource
    from driververify.domain.verification.commands import (
        ClearOverrideResult,
        DocumentReviewResult,
        DriverDecisionResult,
        DriverDocumentsView,
    )
    from driververify.domain.verification.resync import ResyncOutcome, ResyncReport
    from driververify.domain.verification.results import ServiceResponse

log = getLogger(__name__)


def build_verification_service(
    *,
    primary_api: PrimaryApiClient | None = None,
    blob_storage: DocumentSource | None = None,
    document_store: SqlAlchemyDocumentStore | None = None,
    config: DiscoveryConfig | None = None,
) -> DriverVerificationService:
    """Assemble the service from environment configuration and default adapters."""

    effective_config = config or get_discovery_config()
    if document_store is None:
        if not is_started():
            startup()
        document_store = SqlAlchemyDocumentStore(SqlAlchemyDocumentStoreUnitOfWork)
    api = primary_api or PrimaryApiClient()
    storage = blob_storage or BlobStorageSource()

    orchestrator = DiscoveryOrchestrator(
        [api, document_store, storage],
        timeout_seconds=effective_config.adapter_timeout_seconds,
    )
    log.debug(
        "Verification service ready: timeout=%ss, concurrency=%s",
        effective_config.adapter_timeout_seconds,
        effective_config.resync_concurrency,
    )
    return DriverVerificationService(
        orchestrator=orchestrator,
        document_store=document_store,
        primary_api=api,
        admin_id=effective_config.admin_id,
        resync_concurrency=effective_config.resync_concurrency,
    )


def discover_driver_documents(
    driver_id: str, *, service: DriverVerificationService | None = None
) -> ServiceResponse[DriverDocumentsView]:
    effective = service or build_verification_service()
    return asyncio.run(effective.discover_all_driver_documents(driver_id))


def verify_driver_document(
    driver_id: str,
    document_type: str,
    status: str,
    notes: str | None = None,
    *,
    service: DriverVerificationService | None = None,
) -> ServiceResponse[DocumentReviewResult]:
    effective = service or build_verification_service()
    return asyncio.run(effective.verify_document(driver_id, document_type, status, notes))


def approve_driver(
    driver_id: str,
    notes: str | None = None,
    *,
    service: DriverVerificationService | None = None,
) -> ServiceResponse[DriverDecisionResult]:
    effective = service or build_verification_service()
    return asyncio.run(effective.approve_driver(driver_id, notes))


def reject_driver(
    driver_id: str,
    reason: str,
    *,
    service: DriverVerificationService | None = None,
) -> ServiceResponse[DriverDecisionResult]:
    effective = service or build_verification_service()
    return asyncio.run(effective.reject_driver(driver_id, reason))


def clear_driver_override(
    driver_id: str, *, service: DriverVerificationService | None = None
) -> ServiceResponse[ClearOverrideResult]:
    effective = service or build_verification_service()
    return asyncio.run(effective.clear_override(driver_id))


def resync_driver(
    driver_id: str, *, service: DriverVerificationService | None = None
) -> ServiceResponse[ResyncOutcome]:
    effective = service or build_verification_service()
    return asyncio.run(effective.resync_driver(driver_id))


def resync_all_drivers(
    *, service: DriverVerificationService | None = None
) -> ServiceResponse[ResyncReport]:
    effective = service or build_verification_service()
    return asyncio.run(effective.resync_all())
