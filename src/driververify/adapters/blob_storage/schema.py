"""Pydantic models describing object listings from the blob-storage JSON API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BlobStorageBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StorageObjectPayload(BlobStorageBaseModel):
    name: str
    bucket: str | None = None
    size: int | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    time_created: str | None = Field(default=None, alias="timeCreated")
    updated: str | None = None
    media_link: str | None = Field(default=None, alias="mediaLink")
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("size", mode="before")
    @classmethod
    def _parse_size(cls, value: object) -> object:
        # The JSON API encodes 64-bit integers as strings.
        if isinstance(value, str):
            return int(value) if value.strip().isdigit() else None
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def base_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def is_placeholder(self) -> bool:
        """Zero-byte ``folder/`` markers some upload tools create."""

        return self.name.endswith("/") or not self.base_name

    @property
    def download_token(self) -> str | None:
        tokens = self.metadata.get("firebaseStorageDownloadTokens")
        if not tokens:
            return None
        first = tokens.split(",", 1)[0].strip()
        return first or None


class ObjectListing(BlobStorageBaseModel):
    items: list[StorageObjectPayload] = Field(default_factory=list)
    prefixes: list[str] = Field(default_factory=list)
    next_page_token: str | None = Field(default=None, alias="nextPageToken")
