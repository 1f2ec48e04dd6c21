"""Driver verification state.

The driver's status is a tagged value: either computed from its documents or an
explicit admin override. Keeping the two apart means an override can never be
silently replaced by a recomputation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from .enums import DocumentType, DriverVerificationStatus, StatusKind

if TYPE_CHECKING:
    from datetime import datetime

    from .document import DocumentRecord


@dataclass(frozen=True, slots=True, kw_only=True)
class ComputedStatus:
    """Status derived from the driver's documents."""

    value: DriverVerificationStatus
    kind: Literal[StatusKind.COMPUTED] = StatusKind.COMPUTED


@dataclass(frozen=True, slots=True, kw_only=True)
class OverrideStatus:
    """Explicit admin decision on the whole driver; sticky until cleared."""

    value: DriverVerificationStatus
    set_by: str
    set_at: datetime
    reason: str | None = None
    kind: Literal[StatusKind.OVERRIDE] = StatusKind.OVERRIDE

    def __post_init__(self) -> None:
        if self.value not in {DriverVerificationStatus.VERIFIED, DriverVerificationStatus.REJECTED}:
            raise ValueError(f"Override must be verified or rejected, got {self.value}")


type DriverStatus = ComputedStatus | OverrideStatus


def status_payload(status: DriverStatus) -> dict[str, object]:
    payload: dict[str, object] = {"kind": status.kind.value, "value": status.value.value}
    if isinstance(status, OverrideStatus):
        payload["setBy"] = status.set_by
        payload["setAt"] = status.set_at.isoformat()
        if status.reason:
            payload["reason"] = status.reason
    return payload


@dataclass(slots=True, kw_only=True)
class Driver:
    """Verification-relevant slice of a driver."""

    id: str
    status: DriverStatus
    name: str | None = None
    documents: dict[DocumentType, DocumentRecord] = field(default_factory=dict)

    @property
    def verification_status(self) -> DriverVerificationStatus:
        return self.status.value

    @property
    def is_verified(self) -> bool:
        return self.status.value is DriverVerificationStatus.VERIFIED

    @property
    def override(self) -> OverrideStatus | None:
        return self.status if isinstance(self.status, OverrideStatus) else None
