"""Verification command handlers behind one service facade.

Writes go to the primary API first. When it is unavailable the same change is
written straight to the document store (degraded mode) and the result says so.
Every public method returns a ``ServiceResponse`` and never raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from driververify.domain.model import (
    REQUIRED_DOCUMENT_TYPES,
    DocumentStatus,
    DocumentType,
    Driver,
    DriverDecision,
    DriverVerificationStatus,
    OverrideStatus,
    ReviewState,
    status_payload,
)
from driververify.domain.reconciliation.aggregate import resolve_status
from driververify.domain.reconciliation.normalize import parse_status, resolve_document_type

from .errors import (
    AdapterUnavailable,
    CommandFailed,
    DocumentNotFound,
    DriverNotFound,
    ErrorCode,
    InvalidCommand,
    VerificationError,
)
from .resync import (
    DEFAULT_RESYNC_CONCURRENCY,
    ResyncOutcome,
    ResyncReport,
    persist_recomputed_status,
)
from .resync import resync_all as run_resync_all
from .resync import resync_driver as run_resync_driver
from .results import ServiceResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from driververify.domain.model import DriverStatus
    from driververify.domain.ports import DocumentStoreGateway, PrimaryApiGateway
    from driververify.domain.reconciliation.discovery import (
        DiscoveryOrchestrator,
        DiscoveryResult,
    )

log = logging.getLogger(__name__)

# Short names still sent by older admin clients.
COMMAND_TYPE_ALIASES: Final[Mapping[str, DocumentType]] = MappingProxyType(
    {
        "aadhaar": DocumentType.AADHAAR_CARD,
        "insurance": DocumentType.BIKE_INSURANCE,
        "rc": DocumentType.RC_BOOK,
        "profile": DocumentType.PROFILE_PHOTO,
        "license": DocumentType.DRIVING_LICENSE,
    }
)

DEGRADED_NOTICE: Final[str] = (
    "Primary API unavailable; change written directly to the document store"
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _require_driver_id(driver_id: str) -> str:
    if not isinstance(driver_id, str) or not driver_id.strip():
        raise InvalidCommand("driverId is required")
    return driver_id.strip()


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_command_document_type(value: str | DocumentType) -> DocumentType:
    """Resolve a command's document type, accepting the legacy short names."""

    if isinstance(value, DocumentType):
        document_type: DocumentType | None = value
    else:
        key = value.strip()
        document_type = COMMAND_TYPE_ALIASES.get(key.lower()) or resolve_document_type(key)
    if document_type is None or document_type not in REQUIRED_DOCUMENT_TYPES:
        raise InvalidCommand(f"Unknown document type {value!r}")
    return document_type


def parse_review_status(value: str | DocumentStatus) -> DocumentStatus:
    status = parse_status(value)
    if status is None or status is DocumentStatus.PENDING:
        raise InvalidCommand(f"Document status must be verified or rejected, got {value!r}")
    return status


@dataclass(frozen=True, slots=True, kw_only=True)
class DriverDocumentsView:
    """Discovery result together with the driver's effective status."""

    discovery: DiscoveryResult
    status: DriverStatus

    @property
    def driver(self) -> Driver:
        return Driver(
            id=self.discovery.driver_id,
            status=self.status,
            name=self.discovery.driver_name,
            documents=dict(self.discovery.documents),
        )

    @property
    def verification_status(self) -> DriverVerificationStatus:
        return self.status.value

    def to_payload(self) -> dict[str, object]:
        payload = self.discovery.to_payload()
        payload["verificationStatus"] = self.status.value.value
        payload["isVerified"] = self.driver.is_verified
        payload["status"] = status_payload(self.status)
        return payload


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentReviewResult:
    driver_id: str
    document_type: DocumentType
    status: DocumentStatus
    degraded: bool
    verification_status: DriverVerificationStatus | None
    status_persisted: bool

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "driverId": self.driver_id,
            "documentType": self.document_type.value,
            "status": self.status.value,
            "degraded": self.degraded,
            "statusPersisted": self.status_persisted,
            "verificationStatus": (
                self.verification_status.value if self.verification_status else None
            ),
        }
        if self.degraded:
            payload["notice"] = {
                "code": ErrorCode.PARTIAL_WRITE_FAILURE.value,
                "message": DEGRADED_NOTICE,
            }
        return payload


@dataclass(frozen=True, slots=True, kw_only=True)
class DriverDecisionResult:
    driver_id: str
    override: OverrideStatus
    degraded: bool
    notice: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "driverId": self.driver_id,
            "verificationStatus": self.override.value.value,
            "status": status_payload(self.override),
            "degraded": self.degraded,
        }
        if self.notice:
            payload["notice"] = {
                "code": ErrorCode.PARTIAL_WRITE_FAILURE.value,
                "message": self.notice,
            }
        return payload


@dataclass(frozen=True, slots=True, kw_only=True)
class ClearOverrideResult:
    driver_id: str
    cleared: OverrideStatus | None
    verification_status: DriverVerificationStatus | None
    status_persisted: bool

    def to_payload(self) -> dict[str, object]:
        return {
            "driverId": self.driver_id,
            "cleared": status_payload(self.cleared) if self.cleared else None,
            "verificationStatus": (
                self.verification_status.value if self.verification_status else None
            ),
            "statusPersisted": self.status_persisted,
        }


class DriverVerificationService:
    """Public surface: discovery, per-document review, driver decisions, resync."""

    def __init__(
        self,
        *,
        orchestrator: DiscoveryOrchestrator,
        document_store: DocumentStoreGateway,
        primary_api: PrimaryApiGateway | None = None,
        admin_id: str = "admin",
        resync_concurrency: int = DEFAULT_RESYNC_CONCURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = document_store
        self._primary_api = primary_api
        self._admin_id = admin_id
        self._resync_concurrency = resync_concurrency
        self._clock = clock

    async def _respond[T](
        self,
        operation: str,
        fallback_code: ErrorCode,
        action: Callable[[], Awaitable[T]],
        *,
        message: str | None = None,
    ) -> ServiceResponse[T]:
        try:
            data = await action()
        except VerificationError as exc:
            log.warning("%s failed [%s]: %s", operation, exc.code, exc.message)
            return ServiceResponse.from_error(exc)
        except Exception:
            log.exception("%s failed unexpectedly", operation)
            return ServiceResponse.fail(fallback_code, f"{operation} failed unexpectedly")
        return ServiceResponse.ok(data, message=message)

    # -- discovery ---------------------------------------------------------------------

    async def discover_all_driver_documents(
        self, driver_id: str
    ) -> ServiceResponse[DriverDocumentsView]:
        async def action() -> DriverDocumentsView:
            valid_id = _require_driver_id(driver_id)
            discovery = await self._orchestrator.discover(valid_id)
            stored = await self._load_status_quietly(valid_id)
            return DriverDocumentsView(
                discovery=discovery, status=resolve_status(discovery.documents, stored)
            )

        return await self._respond(
            "discoverAllDriverDocuments", ErrorCode.DISCOVER_DOCUMENTS_ERROR, action
        )

    async def _load_status_quietly(self, driver_id: str) -> DriverStatus | None:
        try:
            return await self._store.load_status(driver_id)
        except AdapterUnavailable as exc:
            log.warning("Stored status for driver %s unavailable: %s", driver_id, exc)
            return None

    # -- per-document review -----------------------------------------------------------

    async def verify_document(
        self,
        driver_id: str,
        document_type: str | DocumentType,
        status: str | DocumentStatus,
        notes: str | None = None,
    ) -> ServiceResponse[DocumentReviewResult]:
        async def action() -> DocumentReviewResult:
            valid_id = _require_driver_id(driver_id)
            resolved_type = parse_command_document_type(document_type)
            review_status = parse_review_status(status)
            clean_notes = _optional_text(notes)
            if review_status is DocumentStatus.REJECTED and clean_notes is None:
                raise InvalidCommand("A rejection reason is required to reject a document")
            review = ReviewState(
                status=review_status,
                verification_notes=clean_notes,
                rejection_reason=clean_notes if review_status is DocumentStatus.REJECTED else None,
            )
            await self._check_review_transition(valid_id, resolved_type, review_status)
            degraded = await asyncio.shield(
                self._write_document_review(valid_id, resolved_type, review)
            )
            verification_status, persisted = await asyncio.shield(
                self._refresh_status(valid_id)
            )
            return DocumentReviewResult(
                driver_id=valid_id,
                document_type=resolved_type,
                status=review_status,
                degraded=degraded,
                verification_status=verification_status,
                status_persisted=persisted,
            )

        return await self._respond(
            "verifyDocument",
            ErrorCode.VERIFY_DOCUMENT_ERROR,
            action,
            message="Document review recorded",
        )

    async def _check_review_transition(
        self, driver_id: str, document_type: DocumentType, status: DocumentStatus
    ) -> None:
        """Refuse to reject a document that is already verified.

        The current record comes from a fresh discovery. When no source can answer,
        the check is skipped and the write path reports the failure.
        """

        if status is not DocumentStatus.REJECTED:
            return
        try:
            discovery = await self._orchestrator.discover(driver_id)
        except VerificationError as exc:
            log.warning(
                "Current %s of driver %s unknown, review not checked: %s",
                document_type,
                driver_id,
                exc,
            )
            return
        current = discovery.documents.get(document_type)
        if current is not None and current.status is DocumentStatus.VERIFIED:
            raise InvalidCommand(
                f"{document_type} of driver {driver_id} is verified and cannot be rejected"
            )

    async def _write_document_review(
        self, driver_id: str, document_type: DocumentType, review: ReviewState
    ) -> bool:
        """Write through the primary API or fall back; returns whether it degraded."""

        if self._primary_api is not None:
            try:
                await self._primary_api.verify_document(
                    driver_id,
                    document_type,
                    status=review.status,
                    comments=review.verification_notes or f"Document {review.status} by admin",
                    rejection_reason=review.rejection_reason,
                )
            except AdapterUnavailable as exc:
                log.warning(
                    "Document review for driver %s bypassed primary API: %s", driver_id, exc
                )
            else:
                return False

        try:
            written = await self._store.record_document_review(
                driver_id, document_type, review, reviewed_by=self._admin_id
            )
        except AdapterUnavailable as exc:
            raise CommandFailed(
                f"Could not record review of {document_type} for driver {driver_id}: {exc.message}"
            ) from exc
        if not written:
            if not await self._store.driver_exists(driver_id):
                raise DriverNotFound(driver_id)
            raise DocumentNotFound(
                f"No {document_type} record for driver {driver_id} in the document store"
            )
        log.warning(
            "Document review for driver %s written to document store only (degraded)",
            driver_id,
        )
        return True

    async def _refresh_status(
        self, driver_id: str
    ) -> tuple[DriverVerificationStatus | None, bool]:
        """Re-aggregate after a write; persists only from a conclusive discovery."""

        try:
            discovery = await self._orchestrator.discover(driver_id)
        except VerificationError as exc:
            log.warning("Status refresh for driver %s skipped: %s", driver_id, exc)
            return None, False
        if not discovery.conclusive:
            log.warning("Status refresh for driver %s skipped: discovery inconclusive", driver_id)
            return discovery.computed_status, False
        try:
            _, status = await persist_recomputed_status(self._store, discovery)
        except AdapterUnavailable as exc:
            log.warning("Could not persist status for driver %s: %s", driver_id, exc)
            return discovery.computed_status, False
        return status.value, not isinstance(status, OverrideStatus)

    # -- driver decisions --------------------------------------------------------------

    async def approve_driver(
        self, driver_id: str, notes: str | None = None
    ) -> ServiceResponse[DriverDecisionResult]:
        return await self._respond(
            "approveDriver",
            ErrorCode.APPROVE_DRIVER_ERROR,
            lambda: self._decide(driver_id, DriverDecision.APPROVED, _optional_text(notes)),
            message="Driver approved",
        )

    async def reject_driver(
        self, driver_id: str, reason: str
    ) -> ServiceResponse[DriverDecisionResult]:
        async def action() -> DriverDecisionResult:
            clean_reason = _optional_text(reason)
            if clean_reason is None:
                raise InvalidCommand("A reason is required to reject a driver")
            return await self._decide(driver_id, DriverDecision.REJECTED, clean_reason)

        return await self._respond(
            "rejectDriver", ErrorCode.REJECT_DRIVER_ERROR, action, message="Driver rejected"
        )

    async def _decide(
        self, driver_id: str, decision: DriverDecision, reason: str | None
    ) -> DriverDecisionResult:
        valid_id = _require_driver_id(driver_id)
        value = (
            DriverVerificationStatus.VERIFIED
            if decision is DriverDecision.APPROVED
            else DriverVerificationStatus.REJECTED
        )
        override = OverrideStatus(
            value=value, set_by=self._admin_id, set_at=self._clock(), reason=reason
        )
        return await asyncio.shield(self._write_decision(valid_id, decision, override))

    async def _write_decision(
        self, driver_id: str, decision: DriverDecision, override: OverrideStatus
    ) -> DriverDecisionResult:
        primary_ok = False
        if self._primary_api is not None:
            try:
                await self._primary_api.decide_driver(
                    driver_id,
                    decision=decision,
                    reason=override.reason if decision is DriverDecision.REJECTED else None,
                    comments=override.reason,
                )
            except AdapterUnavailable as exc:
                log.warning("Driver decision for %s bypassed primary API: %s", driver_id, exc)
            else:
                primary_ok = True

        if not primary_ok and not await self._store.driver_exists(driver_id):
            raise DriverNotFound(driver_id)
        try:
            await self._store.record_driver_decision(driver_id, override)
        except AdapterUnavailable as exc:
            if not primary_ok:
                raise CommandFailed(
                    f"Could not record {decision} for driver {driver_id}: {exc.message}"
                ) from exc
            log.warning(
                "Driver %s %s at primary API but override not stored: %s",
                driver_id,
                decision,
                exc,
            )
            return DriverDecisionResult(
                driver_id=driver_id,
                override=override,
                degraded=False,
                notice="Decision applied but the local override record could not be written",
            )
        log.info("Driver %s %s by %s", driver_id, decision, override.set_by)
        return DriverDecisionResult(
            driver_id=driver_id,
            override=override,
            degraded=not primary_ok,
            notice=None if primary_ok else DEGRADED_NOTICE,
        )

    async def clear_override(self, driver_id: str) -> ServiceResponse[ClearOverrideResult]:
        async def action() -> ClearOverrideResult:
            valid_id = _require_driver_id(driver_id)
            cleared = await asyncio.shield(
                self._store.clear_override(valid_id, cleared_by=self._admin_id)
            )
            verification_status, persisted = await asyncio.shield(
                self._refresh_status(valid_id)
            )
            return ClearOverrideResult(
                driver_id=valid_id,
                cleared=cleared,
                verification_status=verification_status,
                status_persisted=persisted,
            )

        return await self._respond(
            "clearOverride", ErrorCode.CLEAR_OVERRIDE_ERROR, action, message="Override cleared"
        )

    # -- resync ------------------------------------------------------------------------

    async def resync_driver(self, driver_id: str) -> ServiceResponse[ResyncOutcome]:
        async def action() -> ResyncOutcome:
            return await run_resync_driver(
                _require_driver_id(driver_id),
                orchestrator=self._orchestrator,
                store=self._store,
                primary_api=self._primary_api,
            )

        return await self._respond(
            "resyncDriver", ErrorCode.RESYNC_DRIVER_ERROR, action, message="Driver resynced"
        )

    async def resync_all(self) -> ServiceResponse[ResyncReport]:
        async def action() -> ResyncReport:
            return await run_resync_all(
                orchestrator=self._orchestrator,
                store=self._store,
                primary_api=self._primary_api,
                concurrency=self._resync_concurrency,
            )

        return await self._respond("resyncAll", ErrorCode.RESYNC_ALL_ERROR, action)
