"""Error taxonomy shared by discovery and the verification commands.

Every error carries a stable ``code`` for callers to branch on and a human-readable
``message``. Raw exception text never becomes a code.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from driververify.domain.model import SourceOrigin


class ErrorCode(StrEnum):
    ADAPTER_UNAVAILABLE = "ADAPTER_UNAVAILABLE"
    ADAPTER_TIMEOUT = "ADAPTER_TIMEOUT"
    DRIVER_NOT_FOUND = "DRIVER_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    INVALID_COMMAND = "INVALID_COMMAND"
    PARTIAL_WRITE_FAILURE = "PARTIAL_WRITE_FAILURE"
    AGGREGATION_INCONSISTENCY = "AGGREGATION_INCONSISTENCY"
    COMMAND_FAILED = "COMMAND_FAILED"

    DISCOVER_DOCUMENTS_ERROR = "DISCOVER_DOCUMENTS_ERROR"
    VERIFY_DOCUMENT_ERROR = "VERIFY_DOCUMENT_ERROR"
    APPROVE_DRIVER_ERROR = "APPROVE_DRIVER_ERROR"
    REJECT_DRIVER_ERROR = "REJECT_DRIVER_ERROR"
    CLEAR_OVERRIDE_ERROR = "CLEAR_OVERRIDE_ERROR"
    RESYNC_DRIVER_ERROR = "RESYNC_DRIVER_ERROR"
    RESYNC_ALL_ERROR = "RESYNC_ALL_ERROR"


class VerificationError(RuntimeError):
    """Base class for errors surfaced with a stable code."""

    code: ErrorCode = ErrorCode.COMMAND_FAILED

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class AdapterUnavailable(VerificationError):
    """One external source could not be reached or answered with an error."""

    code = ErrorCode.ADAPTER_UNAVAILABLE

    def __init__(
        self,
        message: str,
        *,
        source: SourceOrigin | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.source = source


class AdapterTimeout(AdapterUnavailable):
    code = ErrorCode.ADAPTER_TIMEOUT


class DriverNotFound(VerificationError):
    code = ErrorCode.DRIVER_NOT_FOUND

    def __init__(self, driver_id: str) -> None:
        super().__init__(f"Driver {driver_id} not found")
        self.driver_id = driver_id


class DocumentNotFound(VerificationError):
    code = ErrorCode.DOCUMENT_NOT_FOUND


class InvalidCommand(VerificationError):
    """The command was rejected before any write was attempted."""

    code = ErrorCode.INVALID_COMMAND


class AggregationInconsistency(VerificationError):
    code = ErrorCode.AGGREGATION_INCONSISTENCY


class CommandFailed(VerificationError):
    """A write failed through the primary path and the fallback path alike."""

    code = ErrorCode.COMMAND_FAILED
