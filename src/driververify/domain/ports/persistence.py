"""Repository contracts for the document-record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from driververify.domain.model import DriverStatus


@dataclass(slots=True, kw_only=True)
class StoredDriverProfile:
    """Driver profile document; ``payload`` keeps the store's raw nested shape."""

    driver_id: str
    display_name: str | None = None
    user_type: str = "driver"
    payload: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True, kw_only=True)
class StoredVerificationRequest:
    """One verification request submitted by a driver."""

    id: UUID
    driver_id: str
    created_at: datetime
    documents: dict[str, object] = field(default_factory=dict)
    status: str | None = None


@runtime_checkable
class DriverProfileRepository(Protocol):
    def get(self, driver_id: str) -> StoredDriverProfile | None: ...

    def add(self, profile: StoredDriverProfile) -> None: ...

    def update_payload(self, driver_id: str, payload: dict[str, object]) -> None: ...

    def list_driver_ids(self) -> list[str]: ...


@runtime_checkable
class VerificationRequestRepository(Protocol):
    def add(self, request: StoredVerificationRequest) -> None: ...

    def latest_for_driver(self, driver_id: str) -> StoredVerificationRequest | None: ...

    def update_documents(self, request_id: UUID, documents: dict[str, object]) -> None: ...


@runtime_checkable
class DriverStatusRepository(Protocol):
    def get(self, driver_id: str) -> DriverStatus | None: ...

    def save(self, driver_id: str, status: DriverStatus) -> None: ...

    def delete(self, driver_id: str) -> None: ...

    def add_event(
        self,
        driver_id: str,
        status: DriverStatus,
        *,
        event: str,
        actor: str,
        recorded_at: datetime,
    ) -> None: ...
