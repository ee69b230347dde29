"""Source-side data models: drive files and the text chunks cut from them.

Both models are frozen pydantic v2 models.  Field aliases mirror the Drive
API / HTTP wire names (``mimeType``, ``fileId``) so JSON can be parsed and
emitted without hand-written mapping code, while Python code keeps
snake_case attribute names.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Google-native formats have no binary content; they must be exported.
GOOGLE_DOCUMENT = "application/vnd.google-apps.document"
GOOGLE_SPREADSHEET = "application/vnd.google-apps.spreadsheet"
GOOGLE_PRESENTATION = "application/vnd.google-apps.presentation"

NATIVE_EXPORT_TYPES = frozenset({GOOGLE_DOCUMENT, GOOGLE_SPREADSHEET, GOOGLE_PRESENTATION})


class DriveFile(BaseModel):
    """A file discovered by listing a drive folder.

    Read once per ingestion run and never mutated.  ``size`` is ``None`` for
    Google-native formats, which the Drive API reports without a byte size.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Drive file identifier.")
    name: str = Field(description="Display name, including extension when present.")
    mime_type: str = Field(default="application/octet-stream", description="MIME type reported by the drive.")
    size: int | None = Field(default=None, ge=0, description="Size in bytes, if known.")
    modified_time: datetime | None = Field(default=None, description="Last modification time.")

    def is_native_export(self) -> bool:
        """Return ``True`` if the file must be exported rather than downloaded."""
        return self.mime_type in NATIVE_EXPORT_TYPES


class TextChunk(BaseModel):
    """A bounded slice of a document's normalised text.

    ``id`` is derived from ``file_id`` and ``index`` so re-ingesting the same
    file revision yields the same ids and upserts overwrite in place.
    ``start_char`` / ``end_char`` are positional hints into the cleaned text;
    they drift once overlap seeding begins.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Deterministic chunk id: '<fileId>-chunk-<index>'.")
    file_id: str
    file_name: str
    content: str = Field(min_length=1)
    index: int = Field(ge=0, description="Zero-based position within the file.")
    start_char: int = Field(ge=0)
    end_char: int = Field(ge=0)
