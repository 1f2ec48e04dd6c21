"""SQLAlchemy adapter for the document-record store."""

from __future__ import annotations

from .document_store import DocumentStoreError, SqlAlchemyDocumentStore
from .mappings import create_all_tables, mapper_registry
from .repositories import (
    SqlAlchemyDriverProfileRepository,
    SqlAlchemyDriverStatusRepository,
    SqlAlchemyVerificationRequestRepository,
)
from .unit_of_work import (
    SqlAlchemyDocumentStoreUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "DocumentStoreError",
    "SqlAlchemyDocumentStore",
    "SqlAlchemyDocumentStoreUnitOfWork",
    "SqlAlchemyDriverProfileRepository",
    "SqlAlchemyDriverStatusRepository",
    "SqlAlchemyVerificationRequestRepository",
    "StartupError",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "startup",
]
