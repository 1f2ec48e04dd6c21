"""Pydantic models describing the primary driver API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class PrimaryApiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorPayload(PrimaryApiBaseModel):
    code: str | None = None
    message: str | None = None


class ApiEnvelope(PrimaryApiBaseModel):
    """Response envelope every endpoint answers with."""

    success: bool = False
    data: object | None = None
    error: ErrorPayload | str | None = None
    message: str | None = None

    _normalize_message = field_validator("message", mode="before")(_blank_to_none)

    @property
    def error_message(self) -> str:
        if isinstance(self.error, ErrorPayload):
            return self.error.message or self.error.code or self.message or "unknown error"
        return self.error or self.message or "unknown error"

    @property
    def error_code(self) -> str | None:
        if isinstance(self.error, ErrorPayload):
            return self.error.code
        return None


class DriverDocumentsData(PrimaryApiBaseModel):
    """``data`` of ``GET drivers/{id}/documents``.

    Document entries stay raw mappings; normalization owns their many spellings.
    """

    driver_id: str | None = Field(default=None, alias="driverId")
    driver_name: str | None = Field(default=None, alias="driverName")
    documents: dict[str, object] = Field(default_factory=dict)

    _normalize_name = field_validator("driver_name", mode="before")(_blank_to_none)

    @field_validator("documents", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


class DocumentVerificationRequest(PrimaryApiBaseModel):
    status: str
    comments: str = ""
    rejection_reason: str | None = Field(default=None, alias="rejectionReason")


class DriverDecisionRequest(PrimaryApiBaseModel):
    status: str
    reason: str | None = None
    comments: str | None = None
