"""Domain port definitions for adapters."""

from __future__ import annotations

from .gateways import DocumentStoreGateway, PrimaryApiGateway
from .persistence import (
    DriverProfileRepository,
    DriverStatusRepository,
    StoredDriverProfile,
    StoredVerificationRequest,
    VerificationRequestRepository,
)
from .sources import DocumentSource, PartialDocumentSet
from .unit_of_work import (
    DocumentStoreRepositories,
    DocumentStoreUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DocumentSource",
    "DocumentStoreGateway",
    "DocumentStoreRepositories",
    "DocumentStoreUnitOfWork",
    "DriverProfileRepository",
    "DriverStatusRepository",
    "PartialDocumentSet",
    "PrimaryApiGateway",
    "RepositoryCollection",
    "StoredDriverProfile",
    "StoredVerificationRequest",
    "UnitOfWork",
    "VerificationRequestRepository",
]
