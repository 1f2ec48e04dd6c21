"""Write-side ports used by the verification command handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from driververify.domain.model import (
        DocumentStatus,
        DocumentType,
        DriverDecision,
        DriverStatus,
        OverrideStatus,
        ReviewState,
    )


@runtime_checkable
class PrimaryApiGateway(Protocol):
    """Mutations against the primary system of record."""

    async def verify_document(
        self,
        driver_id: str,
        document_type: DocumentType,
        *,
        status: DocumentStatus,
        comments: str,
        rejection_reason: str | None = None,
    ) -> Mapping[str, object]: ...

    async def decide_driver(
        self,
        driver_id: str,
        *,
        decision: DriverDecision,
        reason: str | None = None,
        comments: str | None = None,
    ) -> Mapping[str, object]: ...

    async def sync_driver_status(self, driver_id: str) -> Mapping[str, object]: ...

    async def sync_all_drivers_status(self) -> Mapping[str, object]: ...


@runtime_checkable
class DocumentStoreGateway(Protocol):
    """Document-record store operations outside the discovery read path."""

    async def driver_exists(self, driver_id: str) -> bool: ...

    async def list_driver_ids(self) -> list[str]: ...

    async def record_document_review(
        self,
        driver_id: str,
        document_type: DocumentType,
        review: ReviewState,
        *,
        reviewed_by: str,
    ) -> bool: ...

    async def record_driver_decision(self, driver_id: str, override: OverrideStatus) -> None: ...

    async def load_status(self, driver_id: str) -> DriverStatus | None: ...

    async def save_status(self, driver_id: str, status: DriverStatus) -> None: ...

    async def clear_override(self, driver_id: str, *, cleared_by: str) -> OverrideStatus | None: ...


__all__ = ["DocumentStoreGateway", "PrimaryApiGateway"]
