"""Resync jobs: recompute and persist driver statuses from fresh discovery."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from driververify.domain.model import OverrideStatus, status_payload
from driververify.domain.reconciliation.aggregate import resolve_status

from .errors import AdapterUnavailable, ErrorCode, VerificationError

if TYPE_CHECKING:
    from driververify.domain.model import DriverStatus
    from driververify.domain.ports import DocumentStoreGateway, PrimaryApiGateway
    from driververify.domain.reconciliation.discovery import (
        DiscoveryOrchestrator,
        DiscoveryResult,
    )

log = logging.getLogger(__name__)

DEFAULT_RESYNC_CONCURRENCY = 4


class ServerSync(StrEnum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True, kw_only=True)
class ResyncOutcome:
    driver_id: str
    status: DriverStatus
    previous: DriverStatus | None
    discovery: DiscoveryResult
    server_sync: ServerSync = ServerSync.SKIPPED

    @property
    def changed(self) -> bool:
        return self.previous != self.status

    def to_payload(self) -> dict[str, object]:
        return {
            "driverId": self.driver_id,
            "verificationStatus": self.status.value.value,
            "status": status_payload(self.status),
            "previousStatus": status_payload(self.previous) if self.previous else None,
            "changed": self.changed,
            "serverSync": self.server_sync.value,
            "summary": self.discovery.summary.to_payload(),
            "diagnostics": self.discovery.diagnostics.to_payload(),
        }


@dataclass(slots=True, kw_only=True)
class DriverResyncEntry:
    driver_id: str
    success: bool
    verification_status: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"driverId": self.driver_id, "success": self.success}
        if self.verification_status is not None:
            payload["verificationStatus"] = self.verification_status
        if self.error_code is not None:
            payload["error"] = {"code": self.error_code, "message": self.error_message}
        return payload


@dataclass(slots=True, kw_only=True)
class ResyncReport:
    entries: list[DriverResyncEntry] = field(default_factory=list)
    server_sync: ServerSync = ServerSync.SKIPPED

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def succeeded(self) -> list[str]:
        return [entry.driver_id for entry in self.entries if entry.success]

    @property
    def failed(self) -> list[DriverResyncEntry]:
        return [entry for entry in self.entries if not entry.success]

    def to_payload(self) -> dict[str, object]:
        return {
            "total": self.total,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "serverSync": self.server_sync.value,
            "drivers": [entry.to_payload() for entry in self.entries],
        }


async def persist_recomputed_status(
    store: DocumentStoreGateway,
    discovery: DiscoveryResult,
) -> tuple[DriverStatus | None, DriverStatus]:
    """Persist the status recomputed from ``discovery`` unless an override is in place.

    Returns the previously stored status and the effective one.
    """

    previous = await store.load_status(discovery.driver_id)
    status = resolve_status(discovery.documents, previous)
    if isinstance(status, OverrideStatus):
        log.debug("Driver %s keeps override %s", discovery.driver_id, status.value)
    elif status != previous:
        await store.save_status(discovery.driver_id, status)
    return previous, status


async def resync_driver(
    driver_id: str,
    *,
    orchestrator: DiscoveryOrchestrator,
    store: DocumentStoreGateway,
    primary_api: PrimaryApiGateway | None = None,
) -> ResyncOutcome:
    """Re-run discovery and aggregation for one driver and persist the result.

    Raises ``AdapterUnavailable`` when discovery was inconclusive, so a partial view
    never replaces a stored status.
    """

    discovery = await orchestrator.discover(driver_id)
    if not discovery.conclusive:
        failed = ", ".join(source.value for source in discovery.diagnostics.failed_sources)
        missing = ", ".join(item.value for item in discovery.missing_types)
        raise AdapterUnavailable(
            f"Resync of driver {driver_id} inconclusive: sources {failed} failed "
            f"while {missing} remain undiscovered"
        )

    previous, status = await asyncio.shield(persist_recomputed_status(store, discovery))
    outcome = ResyncOutcome(
        driver_id=driver_id,
        status=status,
        previous=previous,
        discovery=discovery,
    )
    if primary_api is not None:
        try:
            await primary_api.sync_driver_status(driver_id)
        except VerificationError as exc:
            log.warning("Server-side status sync failed for driver %s: %s", driver_id, exc)
            outcome.server_sync = ServerSync.FAILED
        else:
            outcome.server_sync = ServerSync.OK
    log.info(
        "Resynced driver %s: %s -> %s",
        driver_id,
        previous.value if previous else "none",
        status.value,
    )
    return outcome


async def resync_all(
    *,
    orchestrator: DiscoveryOrchestrator,
    store: DocumentStoreGateway,
    primary_api: PrimaryApiGateway | None = None,
    concurrency: int = DEFAULT_RESYNC_CONCURRENCY,
) -> ResyncReport:
    """Resync every known driver with bounded concurrency.

    Per-driver failures are collected into the report; only failing to list the
    drivers at all propagates.
    """

    if concurrency < 1:
        raise ValueError(f"concurrency must be positive, got {concurrency}")
    driver_ids = await store.list_driver_ids()
    semaphore = asyncio.Semaphore(concurrency)

    async def _one(driver_id: str) -> DriverResyncEntry:
        async with semaphore:
            try:
                outcome = await resync_driver(
                    driver_id,
                    orchestrator=orchestrator,
                    store=store,
                )
            except VerificationError as exc:
                log.warning("Resync failed for driver %s: %s", driver_id, exc)
                return DriverResyncEntry(
                    driver_id=driver_id,
                    success=False,
                    error_code=exc.code.value,
                    error_message=exc.message,
                )
            except Exception:
                log.exception("Unexpected error while resyncing driver %s", driver_id)
                return DriverResyncEntry(
                    driver_id=driver_id,
                    success=False,
                    error_code=ErrorCode.RESYNC_DRIVER_ERROR.value,
                    error_message=f"Unexpected error while resyncing driver {driver_id}",
                )
            return DriverResyncEntry(
                driver_id=driver_id,
                success=True,
                verification_status=outcome.status.value.value,
            )

    entries = await asyncio.gather(*(_one(driver_id) for driver_id in driver_ids))
    report = ResyncReport(entries=list(entries))
    if primary_api is not None:
        try:
            await primary_api.sync_all_drivers_status()
        except VerificationError as exc:
            log.warning("Server-side bulk status sync failed: %s", exc)
            report.server_sync = ServerSync.FAILED
        else:
            report.server_sync = ServerSync.OK
    log.info(
        "Resync finished: %d drivers, %d failed",
        report.total,
        len(report.failed),
    )
    return report
