from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

# Document field names shared with the document store.
FIELD_THUMBNAIL = "originalImageThumbnail"
FIELD_ORIGINAL_TEXT = "originalText"
FIELD_TRANSLATED_TEXT = "translatedText"
FIELD_CONTEXTUAL_INFO = "contextualInfo"
FIELD_TARGET_LANGUAGE = "targetLanguage"
FIELD_IS_FAVORITE = "isFavorite"
FIELD_NOTES = "notes"
FIELD_TIMESTAMP = "timestamp"

PATCHABLE_FIELDS = frozenset({FIELD_IS_FAVORITE, FIELD_NOTES})


@dataclass
class HistoryRecord:
    """A translation result ready to be appended to the history collection.

    Attributes:
        original_text: Text extracted from the image.
        translated_text: Translation of `original_text`.
        contextual_info: Short cultural note (or the placeholder when unavailable).
        target_language: Language the text was translated into.
        thumbnail: Optional base64 JPEG thumbnail of the source image.
    """

    original_text: str
    translated_text: str
    contextual_info: str
    target_language: str
    thumbnail: Optional[str] = None
    is_favorite: bool = False
    notes: str = ""

    def to_document(self) -> Dict[str, Any]:
        """Return the document body; the store assigns id and timestamp."""
        document: Dict[str, Any] = {
            FIELD_ORIGINAL_TEXT: self.original_text,
            FIELD_TRANSLATED_TEXT: self.translated_text,
            FIELD_CONTEXTUAL_INFO: self.contextual_info,
            FIELD_TARGET_LANGUAGE: self.target_language,
            FIELD_IS_FAVORITE: self.is_favorite,
            FIELD_NOTES: self.notes,
        }
        if self.thumbnail:
            document[FIELD_THUMBNAIL] = self.thumbnail
        return document


@dataclass
class HistoryEntry:
    """In-memory view of one persisted history document.

    Attributes:
        id: Store-assigned document id.
        owner_id: Identity of the user that owns the entry.
        original_text: Text extracted from the image (never mutated).
        translated_text: Translation result (never mutated).
        contextual_info: Cultural note for the original text.
        target_language: Language the text was translated into.
        thumbnail: Optional base64 JPEG thumbnail.
        is_favorite: Favorite flag, patchable.
        notes: User note, patchable.
        created_at: Server timestamp in seconds; None until the store assigns it.
    """

    id: str
    owner_id: str
    original_text: str = ""
    translated_text: str = ""
    contextual_info: str = ""
    target_language: str = ""
    thumbnail: Optional[str] = None
    is_favorite: bool = False
    notes: str = ""
    created_at: Optional[float] = None

    @property
    def sort_key(self) -> float:
        return self.created_at if self.created_at is not None else 0.0

    @classmethod
    def from_document(cls, doc_id: str, owner_id: str, data: Dict[str, Any]) -> "HistoryEntry":
        timestamp = data.get(FIELD_TIMESTAMP)
        return cls(
            id=doc_id,
            owner_id=owner_id,
            original_text=data.get(FIELD_ORIGINAL_TEXT) or "",
            translated_text=data.get(FIELD_TRANSLATED_TEXT) or "",
            contextual_info=data.get(FIELD_CONTEXTUAL_INFO) or "",
            target_language=data.get(FIELD_TARGET_LANGUAGE) or "",
            thumbnail=data.get(FIELD_THUMBNAIL),
            is_favorite=bool(data.get(FIELD_IS_FAVORITE, False)),
            notes=data.get(FIELD_NOTES) or "",
            created_at=float(timestamp) if timestamp is not None else None,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            FIELD_ORIGINAL_TEXT: self.original_text,
            FIELD_TRANSLATED_TEXT: self.translated_text,
            FIELD_CONTEXTUAL_INFO: self.contextual_info,
            FIELD_TARGET_LANGUAGE: self.target_language,
            "hasThumbnail": bool(self.thumbnail),
            FIELD_IS_FAVORITE: self.is_favorite,
            FIELD_NOTES: self.notes,
            FIELD_TIMESTAMP: self.created_at,
        }
