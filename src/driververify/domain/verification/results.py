"""Uniform ``{success, data, error}`` envelope returned to the UI layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .errors import ErrorCode, VerificationError


@runtime_checkable
class SupportsPayload(Protocol):
    def to_payload(self) -> dict[str, object]: ...


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    code: str
    message: str

    @classmethod
    def from_error(cls, error: VerificationError) -> ErrorInfo:
        return cls(code=error.code.value, message=error.message)

    def to_payload(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True, slots=True)
class ServiceResponse[T]:
    success: bool
    data: T | None = None
    error: ErrorInfo | None = None
    message: str | None = None

    @classmethod
    def ok(cls, data: T, *, message: str | None = None) -> ServiceResponse[T]:
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, code: ErrorCode | str, message: str) -> ServiceResponse[T]:
        return cls(success=False, error=ErrorInfo(code=str(code), message=message))

    @classmethod
    def from_error(cls, error: VerificationError) -> ServiceResponse[T]:
        return cls(success=False, error=ErrorInfo.from_error(error))

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success}
        if self.data is not None:
            data = self.data
            payload["data"] = data.to_payload() if isinstance(data, SupportsPayload) else data
        if self.error is not None:
            payload["error"] = self.error.to_payload()
        if self.message is not None:
            payload["message"] = self.message
        return payload
