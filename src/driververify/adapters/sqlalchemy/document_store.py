"""Document-record store: discovery source two and the degraded-mode write target.

Document maps are read from three places, most specific first: the driver's latest
verification request, the profile's ``driver.documents`` map, and the profile's
root ``documents`` map. Writes made while the primary API is down update every one
of those entries that holds the document, so the next discovery sees the review
whichever layer supplies the record.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy.exc import SQLAlchemyError

from driververify.domain.model import DocumentStatus, OverrideStatus, SourceOrigin
from driververify.domain.ports import (
    DocumentSource,
    DocumentStoreGateway,
    PartialDocumentSet,
)
from driververify.domain.reconciliation.normalize import (
    DOCUMENT_TYPE_ALIASES,
    NormalizedDocuments,
    normalize_document_map,
)
from driververify.domain.verification.errors import AdapterUnavailable

if TYPE_CHECKING:
    from driververify.domain.model import DocumentType, DriverStatus, ReviewState
    from driververify.domain.ports import (
        DocumentStoreUnitOfWork,
        StoredDriverProfile,
        StoredVerificationRequest,
    )

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], DocumentStoreUnitOfWork]


class DocumentStoreError(AdapterUnavailable):
    def __init__(self, message: str) -> None:
        super().__init__(message, source=SourceOrigin.DOCUMENT_STORE)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _mapping(value: object) -> dict[str, object]:
    if isinstance(value, Mapping):
        return dict(cast(Mapping[str, object], value))
    return {}


def _profile_document_maps(profile: StoredDriverProfile) -> list[tuple[str, dict[str, object]]]:
    driver_section = _mapping(profile.payload.get("driver"))
    return [
        ("driver.documents", _mapping(driver_section.get("documents"))),
        ("documents", _mapping(profile.payload.get("documents"))),
    ]


def _display_name(profile: StoredDriverProfile | None) -> str | None:
    if profile is None:
        return None
    if profile.display_name:
        return profile.display_name
    personal = _mapping(profile.payload.get("personalInfo"))
    for candidate in (personal.get("name"), profile.payload.get("name")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _entry_key(documents: Mapping[str, object], document_type: DocumentType) -> str:
    """Key already used for ``document_type`` in ``documents``, else the canonical one."""

    for alias in DOCUMENT_TYPE_ALIASES[document_type]:
        if isinstance(documents.get(alias), Mapping):
            return alias
    return document_type.value


def _apply_review(
    entry: dict[str, object], review: ReviewState, *, reviewed_by: str, reviewed_at: datetime
) -> dict[str, object]:
    updated = dict(entry)
    updated["status"] = review.status.value
    if "verificationStatus" in updated:
        updated["verificationStatus"] = review.status.value
    updated["verified"] = review.status is DocumentStatus.VERIFIED
    updated["verificationNotes"] = review.verification_notes or ""
    if review.rejection_reason:
        updated["rejectionReason"] = review.rejection_reason
    else:
        updated.pop("rejectionReason", None)
    updated["reviewedBy"] = reviewed_by
    updated["reviewedAt"] = reviewed_at.isoformat()
    return updated


class SqlAlchemyDocumentStore:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @property
    def origin(self) -> SourceOrigin:
        return SourceOrigin.DOCUMENT_STORE

    # -- discovery ---------------------------------------------------------------------

    async def discover_for_driver(self, driver_id: str) -> PartialDocumentSet:
        try:
            with self._uow_factory() as uow:
                profile = uow.repositories.profiles.get(driver_id)
                request = uow.repositories.verification_requests.latest_for_driver(driver_id)
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Reading documents of driver {driver_id} failed") from exc

        layers: list[tuple[str, dict[str, object]]] = []
        if request is not None:
            layers.append(("verificationRequest", request.documents))
        if profile is not None:
            layers.extend(_profile_document_maps(profile))

        merged = NormalizedDocuments()
        for _, documents in layers:
            normalized = normalize_document_map(
                documents, SourceOrigin.DOCUMENT_STORE, driver_id=driver_id
            )
            for document_type, record in normalized.records.items():
                merged.records.setdefault(document_type, record)
            for document_type, hint in normalized.review_hints.items():
                merged.review_hints.setdefault(document_type, hint)
            merged.extras.extend(normalized.extras)
        for document_type in merged.records:
            merged.review_hints.pop(document_type, None)

        return PartialDocumentSet(
            source=SourceOrigin.DOCUMENT_STORE,
            records=merged.records,
            extras=merged.extras,
            review_hints=merged.review_hints,
            driver_found=profile is not None or request is not None,
            driver_name=_display_name(profile),
            details={"layers": [name for name, documents in layers if documents]},
        )

    # -- gateway -----------------------------------------------------------------------

    async def driver_exists(self, driver_id: str) -> bool:
        try:
            with self._uow_factory() as uow:
                return uow.repositories.profiles.get(driver_id) is not None
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Looking up driver {driver_id} failed") from exc

    async def list_driver_ids(self) -> list[str]:
        try:
            with self._uow_factory() as uow:
                return uow.repositories.profiles.list_driver_ids()
        except SQLAlchemyError as exc:
            raise DocumentStoreError("Listing drivers failed") from exc

    async def record_document_review(
        self,
        driver_id: str,
        document_type: DocumentType,
        review: ReviewState,
        *,
        reviewed_by: str,
    ) -> bool:
        reviewed_at = self._clock()
        try:
            with self._uow_factory() as uow:
                repositories = uow.repositories
                request = repositories.verification_requests.latest_for_driver(driver_id)
                profile = repositories.profiles.get(driver_id)
                written = False
                if request is not None and self._review_request(
                    request, document_type, review, reviewed_by, reviewed_at
                ):
                    repositories.verification_requests.update_documents(
                        request.id, request.documents
                    )
                    written = True
                if profile is not None:
                    payload = self._review_profile(
                        profile, document_type, review, reviewed_by, reviewed_at
                    )
                    repositories.profiles.update_payload(driver_id, payload)
                    written = True
                if not written:
                    return False
                uow.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(
                f"Recording review of {document_type} for driver {driver_id} failed"
            ) from exc
        log.info("Stored %s review of %s for driver %s", review.status, document_type, driver_id)
        return True

    @staticmethod
    def _review_request(
        request: StoredVerificationRequest,
        document_type: DocumentType,
        review: ReviewState,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> bool:
        key = _entry_key(request.documents, document_type)
        entry = _mapping(request.documents.get(key))
        if not entry:
            return False
        request.documents[key] = _apply_review(
            entry, review, reviewed_by=reviewed_by, reviewed_at=reviewed_at
        )
        return True

    @staticmethod
    def _review_profile(
        profile: StoredDriverProfile,
        document_type: DocumentType,
        review: ReviewState,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> dict[str, object]:
        """Apply ``review`` to every profile map holding the document.

        A profile without any entry for the type gets a review-only entry under
        ``driver.documents``.
        """

        payload = dict(profile.payload)
        driver_section = _mapping(payload.get("driver"))
        maps = {
            "driver.documents": _mapping(driver_section.get("documents")),
            "documents": _mapping(payload.get("documents")),
        }
        holders = [
            name
            for name, documents in maps.items()
            if isinstance(documents.get(_entry_key(documents, document_type)), Mapping)
        ]
        for name in holders or ["driver.documents"]:
            documents = maps[name]
            key = _entry_key(documents, document_type)
            documents[key] = _apply_review(
                _mapping(documents.get(key)),
                review,
                reviewed_by=reviewed_by,
                reviewed_at=reviewed_at,
            )
        if maps["driver.documents"]:
            driver_section["documents"] = maps["driver.documents"]
            payload["driver"] = driver_section
        if maps["documents"]:
            payload["documents"] = maps["documents"]
        return payload

    async def record_driver_decision(self, driver_id: str, override: OverrideStatus) -> None:
        try:
            with self._uow_factory() as uow:
                statuses = uow.repositories.statuses
                statuses.save(driver_id, override)
                statuses.add_event(
                    driver_id,
                    override,
                    event="override_set",
                    actor=override.set_by,
                    recorded_at=override.set_at,
                )
                uow.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Recording decision for driver {driver_id} failed") from exc

    async def load_status(self, driver_id: str) -> DriverStatus | None:
        try:
            with self._uow_factory() as uow:
                return uow.repositories.statuses.get(driver_id)
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Loading status of driver {driver_id} failed") from exc

    async def save_status(self, driver_id: str, status: DriverStatus) -> None:
        try:
            with self._uow_factory() as uow:
                statuses = uow.repositories.statuses
                statuses.save(driver_id, status)
                statuses.add_event(
                    driver_id,
                    status,
                    event="status_recomputed",
                    actor="system",
                    recorded_at=self._clock(),
                )
                uow.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Saving status of driver {driver_id} failed") from exc

    async def clear_override(self, driver_id: str, *, cleared_by: str) -> OverrideStatus | None:
        try:
            with self._uow_factory() as uow:
                statuses = uow.repositories.statuses
                current = statuses.get(driver_id)
                if not isinstance(current, OverrideStatus):
                    return None
                statuses.delete(driver_id)
                statuses.add_event(
                    driver_id,
                    current,
                    event="override_cleared",
                    actor=cleared_by,
                    recorded_at=self._clock(),
                )
                uow.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Clearing override of driver {driver_id} failed") from exc
        log.info("Cleared %s override of driver %s", current.value, driver_id)
        return current


if TYPE_CHECKING:
    _source_check: DocumentSource = SqlAlchemyDocumentStore(
        lambda: cast("DocumentStoreUnitOfWork", None)
    )
    _gateway_check: DocumentStoreGateway = SqlAlchemyDocumentStore(
        lambda: cast("DocumentStoreUnitOfWork", None)
    )
