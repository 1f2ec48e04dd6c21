"""Blob-storage document source.

Driver uploads live under ``drivers/{driver_id}/documents/{folder}/``, one folder
per document type. Older clients wrote flat into ``drivers/{driver_id}/documents/``
or straight into ``drivers/{driver_id}/``; those objects are classified by file
name and only fill types the canonical folders left empty.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from driververify.adapters.http_resilience import ClientFactory, default_client_factory
from driververify.config.blob_storage import BlobStorageConfig, get_blob_storage_config
from driververify.domain.model import REQUIRED_DOCUMENT_TYPES, DocumentType, SourceOrigin
from driververify.domain.ports import DocumentSource, PartialDocumentSet
from driververify.domain.reconciliation.classify import CANONICAL_FOLDERS, classify_detail
from driververify.domain.reconciliation.normalize import normalize
from driververify.domain.verification.errors import AdapterUnavailable

from .schema import ObjectListing, StorageObjectPayload

if TYPE_CHECKING:
    from driververify.adapters.http_resilience import ResilientClient
    from driververify.domain.model import DocumentRecord

log = getLogger(__name__)

_PAGE_SIZE = 100


class BlobStorageError(AdapterUnavailable):
    """Raised when an object listing cannot be obtained."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message, source=SourceOrigin.STORAGE)
        self.status_code = status_code


def driver_prefix(driver_id: str) -> str:
    return f"drivers/{driver_id}/"


def documents_prefix(driver_id: str) -> str:
    return f"{driver_prefix(driver_id)}documents/"


def folder_prefix(driver_id: str, document_type: DocumentType) -> str:
    return f"{documents_prefix(driver_id)}{CANONICAL_FOLDERS[document_type]}/"


@dataclass(slots=True)
class BlobStorageSource:
    config: BlobStorageConfig = field(default_factory=get_blob_storage_config)
    client_factory: ClientFactory = field(default=default_client_factory)

    @property
    def origin(self) -> SourceOrigin:
        return SourceOrigin.STORAGE

    async def discover_for_driver(self, driver_id: str) -> PartialDocumentSet:
        records: dict[DocumentType, DocumentRecord] = {}
        extras: list[DocumentRecord] = []
        listed: list[str] = []
        hints: dict[str, str] = {}

        async with self.client_factory(self.config.resilience) as client:
            folder_listings = await asyncio.gather(
                *(
                    self._list_objects(client, folder_prefix(driver_id, document_type))
                    for document_type in REQUIRED_DOCUMENT_TYPES
                )
            )
            for document_type, objects in zip(
                REQUIRED_DOCUMENT_TYPES, folder_listings, strict=True
            ):
                listed.append(folder_prefix(driver_id, document_type))
                latest = _latest(objects)
                if latest is None:
                    continue
                record = self._to_record(
                    latest,
                    driver_id=driver_id,
                    document_type=document_type,
                    folder=CANONICAL_FOLDERS[document_type],
                )
                if record is not None:
                    records[document_type] = record

            for prefix, folder in (
                (documents_prefix(driver_id), "documents"),
                (driver_prefix(driver_id), "root"),
            ):
                if all(document_type in records for document_type in REQUIRED_DOCUMENT_TYPES):
                    break
                listed.append(prefix)
                objects = await self._list_objects(client, prefix)
                for item in sorted(objects, key=lambda obj: obj.name, reverse=True):
                    classification = classify_detail(item.base_name)
                    document_type = classification.document_type
                    if document_type is DocumentType.OTHER:
                        record = self._to_record(
                            item, driver_id=driver_id, document_type=document_type, folder=folder
                        )
                        if record is not None:
                            extras.append(record)
                            if classification.hint:
                                hints[item.name] = classification.hint
                        continue
                    if document_type in records:
                        continue
                    record = self._to_record(
                        item, driver_id=driver_id, document_type=document_type, folder=folder
                    )
                    if record is not None:
                        records[document_type] = record

        return PartialDocumentSet(
            source=SourceOrigin.STORAGE,
            records=records,
            extras=extras,
            details={"foldersListed": listed, "otherHints": hints},
        )

    async def _list_objects(
        self, client: ResilientClient, prefix: str
    ) -> list[StorageObjectPayload]:
        """List the objects directly under ``prefix`` across all pages."""

        path = f"b/{quote(self.config.bucket, safe='')}/o"
        objects: list[StorageObjectPayload] = []
        page_token: str | None = None
        while True:
            params: dict[str, str | int] = {
                "prefix": prefix,
                "delimiter": "/",
                "maxResults": _PAGE_SIZE,
            }
            if page_token is not None:
                params["pageToken"] = page_token
            listing = await self._request_listing(client, path, httpx.QueryParams(params))
            objects.extend(item for item in listing.items if not item.is_placeholder)
            page_token = listing.next_page_token
            if not page_token:
                return objects

    async def _request_listing(
        self, client: ResilientClient, path: str, params: httpx.QueryParams
    ) -> ObjectListing:
        prefix = params.get("prefix")
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise BlobStorageError(f"Listing {prefix} timed out") from exc
        except httpx.HTTPError as exc:
            raise BlobStorageError(f"Listing {prefix} failed: {type(exc).__name__}") from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.warning("Blob storage listing %s answered HTTP %s", prefix, response.status_code)
            raise BlobStorageError(
                f"Listing {prefix} answered HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc
        try:
            return ObjectListing.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise BlobStorageError(f"Malformed listing for {prefix}") from exc

    def download_url(self, item: StorageObjectPayload) -> str | None:
        token = item.download_token
        if token is not None:
            bucket = quote(item.bucket or self.config.bucket, safe="")
            name = quote(item.name, safe="")
            return f"{self.config.download_base_url}b/{bucket}/o/{name}?alt=media&token={token}"
        return item.media_link

    def _to_record(
        self,
        item: StorageObjectPayload,
        *,
        driver_id: str,
        document_type: DocumentType,
        folder: str,
    ) -> DocumentRecord | None:
        url = self.download_url(item)
        if url is None:
            log.debug("No download URL for storage object %s", item.name)
            return None
        raw: dict[str, object] = {
            "url": url,
            "fileName": item.base_name,
            "contentType": item.content_type,
            "size": item.size,
            "timeCreated": item.time_created,
            "folder": folder,
            "sourcePath": item.name,
        }
        return normalize(
            raw, SourceOrigin.STORAGE, driver_id=driver_id, document_type=document_type
        )


def _latest(objects: list[StorageObjectPayload]) -> StorageObjectPayload | None:
    """Most recent object by naming convention: the lexicographically last name."""

    if not objects:
        return None
    return max(objects, key=lambda item: item.name)


if TYPE_CHECKING:
    _source_check: DocumentSource = BlobStorageSource()
