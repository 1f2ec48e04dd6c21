"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, insert, select, update

from driververify.adapters.sqlalchemy.mappings import (
    driver_profile_table,
    driver_status_event_table,
    driver_status_table,
    verification_request_table,
)
from driververify.domain.model import (
    ComputedStatus,
    DriverVerificationStatus,
    OverrideStatus,
    StatusKind,
)
from driververify.domain.ports.persistence import (
    StoredDriverProfile,
    StoredVerificationRequest,
)

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from driververify.domain.model import DriverStatus


def _json_object(value: object) -> dict[str, object]:
    if isinstance(value, dict):
        return copy.deepcopy(cast(dict[str, object], value))
    return {}


class SqlAlchemyDriverProfileRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, driver_id: str) -> StoredDriverProfile | None:
        stmt = select(driver_profile_table).where(driver_profile_table.c.driver_id == driver_id)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return StoredDriverProfile(
            driver_id=row.driver_id,
            display_name=row.display_name,
            user_type=row.user_type,
            payload=_json_object(row.payload),
        )

    def add(self, profile: StoredDriverProfile) -> None:
        self.session.execute(
            insert(driver_profile_table).values(
                driver_id=profile.driver_id,
                display_name=profile.display_name,
                user_type=profile.user_type,
                payload=profile.payload,
            )
        )

    def update_payload(self, driver_id: str, payload: dict[str, object]) -> None:
        self.session.execute(
            update(driver_profile_table)
            .where(driver_profile_table.c.driver_id == driver_id)
            .values(payload=payload)
        )

    def list_driver_ids(self) -> list[str]:
        stmt = (
            select(driver_profile_table.c.driver_id)
            .where(driver_profile_table.c.user_type == "driver")
            .order_by(driver_profile_table.c.driver_id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyVerificationRequestRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, request: StoredVerificationRequest) -> None:
        self.session.execute(
            insert(verification_request_table).values(
                id=request.id,
                driver_id=request.driver_id,
                created_at=request.created_at,
                status=request.status,
                documents=request.documents,
            )
        )

    def latest_for_driver(self, driver_id: str) -> StoredVerificationRequest | None:
        stmt = (
            select(verification_request_table)
            .where(verification_request_table.c.driver_id == driver_id)
            .order_by(verification_request_table.c.created_at.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return StoredVerificationRequest(
            id=row.id,
            driver_id=row.driver_id,
            created_at=row.created_at,
            documents=_json_object(row.documents),
            status=row.status,
        )

    def update_documents(self, request_id: UUID, documents: dict[str, object]) -> None:
        self.session.execute(
            update(verification_request_table)
            .where(verification_request_table.c.id == request_id)
            .values(documents=documents)
        )


class SqlAlchemyDriverStatusRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, driver_id: str) -> DriverStatus | None:
        stmt = select(driver_status_table).where(driver_status_table.c.driver_id == driver_id)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return self._to_status(row)

    def save(self, driver_id: str, status: DriverStatus) -> None:
        values = self._status_values(status)
        exists = self.session.execute(
            select(driver_status_table.c.driver_id).where(
                driver_status_table.c.driver_id == driver_id
            )
        ).scalar_one_or_none()
        if exists is None:
            self.session.execute(insert(driver_status_table).values(driver_id=driver_id, **values))
        else:
            self.session.execute(
                update(driver_status_table)
                .where(driver_status_table.c.driver_id == driver_id)
                .values(**values)
            )

    def delete(self, driver_id: str) -> None:
        self.session.execute(
            delete(driver_status_table).where(driver_status_table.c.driver_id == driver_id)
        )

    def add_event(
        self,
        driver_id: str,
        status: DriverStatus,
        *,
        event: str,
        actor: str,
        recorded_at: datetime,
    ) -> None:
        self.session.execute(
            insert(driver_status_event_table).values(
                driver_id=driver_id,
                event=event,
                kind=status.kind,
                value=status.value,
                actor=actor,
                reason=status.reason if isinstance(status, OverrideStatus) else None,
                recorded_at=recorded_at,
            )
        )

    def list_events(self, driver_id: str) -> list[dict[str, object]]:
        stmt = (
            select(driver_status_event_table)
            .where(driver_status_event_table.c.driver_id == driver_id)
            .order_by(driver_status_event_table.c.id)
        )
        return [dict(row._mapping) for row in self.session.execute(stmt)]  # noqa: SLF001

    @staticmethod
    def _status_values(status: DriverStatus) -> dict[str, object]:
        if isinstance(status, OverrideStatus):
            return {
                "kind": StatusKind.OVERRIDE,
                "value": status.value,
                "set_by": status.set_by,
                "set_at": status.set_at,
                "reason": status.reason,
            }
        return {
            "kind": StatusKind.COMPUTED,
            "value": status.value,
            "set_by": None,
            "set_at": None,
            "reason": None,
        }

    @staticmethod
    def _to_status(row: Row[tuple[object, ...]]) -> DriverStatus:
        value = DriverVerificationStatus(row.value)
        if StatusKind(row.kind) is StatusKind.OVERRIDE and row.set_at is not None:
            return OverrideStatus(
                value=value,
                set_by=row.set_by or "unknown",
                set_at=row.set_at,
                reason=row.reason,
            )
        return ComputedStatus(value=value)


if TYPE_CHECKING:
    from driververify.domain.ports.persistence import (
        DriverProfileRepository,
        DriverStatusRepository,
        VerificationRequestRepository,
    )

    _session_stub = cast("Session", object())
    _profile_repo: DriverProfileRepository = SqlAlchemyDriverProfileRepository(_session_stub)
    _request_repo: VerificationRequestRepository = SqlAlchemyVerificationRequestRepository(
        _session_stub
    )
    _status_repo: DriverStatusRepository = SqlAlchemyDriverStatusRepository(_session_stub)
