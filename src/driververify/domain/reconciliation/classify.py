"""Map storage file names and folder names onto canonical document types.

Folder placement is checked before the file name: when the storage tree enforces
one folder per type that is the stronger signal, while file-name patterns exist to
catch flat and legacy uploads.

Both inputs are tokenised on separators and camelCase boundaries. Short patterns
(``dl``, ``rc``, ``id``, ``pan``) must equal a whole token so that words such as
``aadhaar_card`` or ``android`` do not trigger them; longer patterns match anywhere
in the separator-stripped text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from driververify.domain.model import DocumentType

if TYPE_CHECKING:
    from collections.abc import Mapping

CLASSIFICATION_PATTERNS: Final[tuple[tuple[DocumentType, tuple[str, ...]], ...]] = (
    (DocumentType.DRIVING_LICENSE, ("license", "licence", "driving", "dl")),
    (DocumentType.BIKE_INSURANCE, ("insurance", "policy", "coverage")),
    (DocumentType.RC_BOOK, ("registration", "rc", "vehicle")),
    (
        DocumentType.AADHAAR_CARD,
        ("identity", "id", "aadhar", "aadhaar", "pan", "passport", "voter"),
    ),
    (DocumentType.PROFILE_PHOTO, ("photo", "picture", "image", "profile")),
)

CANONICAL_FOLDERS: Final[Mapping[DocumentType, str]] = MappingProxyType(
    {
        DocumentType.DRIVING_LICENSE: "driving_license",
        DocumentType.AADHAAR_CARD: "aadhaar_card",
        DocumentType.BIKE_INSURANCE: "bike_insurance",
        DocumentType.RC_BOOK: "rc_book",
        DocumentType.PROFILE_PHOTO: "profile_photo",
    }
)

IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {"jpg", "jpeg", "png", "gif", "webp", "heic"}
)
DOCUMENT_EXTENSIONS: Final[frozenset[str]] = frozenset({"pdf"})

_SHORT_PATTERN_MAX_LENGTH: Final[int] = 3
_SEPARATORS = re.compile(r"[\s_\-./\\]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class MatchSource(StrEnum):
    CANONICAL_FOLDER = "canonical_folder"
    FOLDER = "folder"
    FILE_NAME = "file_name"
    EXTENSION = "extension"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class Classification:
    document_type: DocumentType
    matched_by: MatchSource
    pattern: str | None = None
    hint: str | None = None


def tokenize(value: str) -> tuple[str, ...]:
    """Split ``value`` into lowercase tokens on separators and camelCase humps."""

    split_camel = _CAMEL_BOUNDARY.sub(" ", value.strip())
    return tuple(token.lower() for token in _SEPARATORS.split(split_camel) if token)


_CANONICAL_BY_TOKENS: Final[Mapping[tuple[str, ...], DocumentType]] = MappingProxyType(
    {tokenize(folder): document_type for document_type, folder in CANONICAL_FOLDERS.items()}
    | {tokenize(document_type.value): document_type for document_type in CANONICAL_FOLDERS}
)


def match_patterns(value: str) -> tuple[DocumentType, str] | None:
    """Return the first pattern-table hit for ``value`` in table order."""

    tokens = tokenize(value)
    if not tokens:
        return None
    compact = "".join(tokens)
    token_set = frozenset(tokens)
    for document_type, patterns in CLASSIFICATION_PATTERNS:
        for pattern in patterns:
            if len(pattern) <= _SHORT_PATTERN_MAX_LENGTH:
                if pattern in token_set:
                    return document_type, pattern
            elif pattern in compact:
                return document_type, pattern
    return None


def _folder_leaf(folder_hint: str) -> str:
    parts = [part for part in folder_hint.replace("\\", "/").split("/") if part]
    return parts[-1] if parts else ""


def _extension(file_name: str) -> str:
    return PurePosixPath(file_name).suffix.lower().lstrip(".")


def classify_detail(file_name_or_key: str, folder_hint: str = "") -> Classification:
    """Classify with the reason for the decision attached."""

    folder = _folder_leaf(folder_hint)
    canonical = _CANONICAL_BY_TOKENS.get(tokenize(folder))
    if canonical is not None:
        return Classification(canonical, MatchSource.CANONICAL_FOLDER, pattern=folder)

    folder_match = match_patterns(folder)
    if folder_match is not None:
        return Classification(folder_match[0], MatchSource.FOLDER, pattern=folder_match[1])

    base_name = PurePosixPath(file_name_or_key.replace("\\", "/")).name
    stem = PurePosixPath(base_name).stem if _extension(base_name) else base_name
    name_match = match_patterns(stem)
    if name_match is not None:
        return Classification(name_match[0], MatchSource.FILE_NAME, pattern=name_match[1])

    extension = _extension(base_name)
    if extension in IMAGE_EXTENSIONS:
        return Classification(DocumentType.OTHER, MatchSource.EXTENSION, hint="photo")
    if extension in DOCUMENT_EXTENSIONS:
        return Classification(DocumentType.OTHER, MatchSource.EXTENSION, hint="document")
    return Classification(DocumentType.OTHER, MatchSource.NONE)


def classify(file_name_or_key: str, folder_hint: str = "") -> DocumentType:
    """Return the canonical document type for a storage object."""

    return classify_detail(file_name_or_key, folder_hint).document_type
