"""Per-user translation history on top of the realtime document store.

The view handed to callers is always rebuilt from the store's latest full
snapshot and sorted newest first. Entries still waiting for a server
timestamp count as epoch 0, so they sort last.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

from dal.document_dal import StoredDocument
from models.errors import InvalidPatchError, PersistenceError
from models.history_entry import (
    FIELD_IS_FAVORITE,
    FIELD_NOTES,
    PATCHABLE_FIELDS,
    HistoryEntry,
    HistoryRecord,
)
from services.auth_provider import AuthProvider
from services.document_store import SQLiteDocumentStore

LOGGER = logging.getLogger(__name__)


def collection_path(app_id: str, owner_id: str) -> str:
    return f"artifacts/{app_id}/users/{owner_id}/translations"


def build_history_view(owner_id: str, documents: Iterable[StoredDocument]) -> List[HistoryEntry]:
    """Materialize a snapshot as entries sorted descending by timestamp."""
    entries = [HistoryEntry.from_document(doc_id, owner_id, data) for doc_id, data in documents]
    entries.sort(key=lambda entry: entry.sort_key, reverse=True)
    return entries


def validate_patch(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `fields` if it only touches favorite status and notes.

    Raises:
        InvalidPatchError: If the patch is empty, names other fields, or has wrong types.
    """
    if not fields:
        raise InvalidPatchError("Patch must include isFavorite or notes.")
    unknown = sorted(set(fields) - PATCHABLE_FIELDS)
    if unknown:
        raise InvalidPatchError(f"Fields cannot be updated: {', '.join(unknown)}")
    if FIELD_IS_FAVORITE in fields and not isinstance(fields[FIELD_IS_FAVORITE], bool):
        raise InvalidPatchError("isFavorite must be a boolean.")
    if FIELD_NOTES in fields and not isinstance(fields[FIELD_NOTES], str):
        raise InvalidPatchError("notes must be a string.")
    return dict(fields)


class HistoryStore:
    """Live, ordered history for the signed-in user plus create/patch mutations.

    Args:
        store: Document store holding one collection per owner.
        auth: Provider of the signed-in identity; all paths are keyed by it.
        app_id: Logical application id scoping every collection path.
    """

    def __init__(self, store: SQLiteDocumentStore, auth: AuthProvider, app_id: str) -> None:
        self.store = store
        self.auth = auth
        self.app_id = app_id

    def _path(self, owner_id: Optional[str] = None) -> Tuple[str, str]:
        owner = owner_id or self.auth.require_user().uid
        return owner, collection_path(self.app_id, owner)

    async def subscribe(self, owner_id: Optional[str] = None) -> AsyncIterator[List[HistoryEntry]]:
        """Yield the full ordered view on every store update, starting with the current set.

        Raises:
            AuthUnavailableError: If no owner is given and nobody is signed in.
        """
        owner, path = self._path(owner_id)
        listener = self.store.listen(path)
        try:
            async for documents in listener:
                view = build_history_view(owner, documents)
                LOGGER.debug("History updated: %d entries.", len(view))
                yield view
        finally:
            await listener.aclose()

    async def snapshot(self, owner_id: Optional[str] = None) -> List[HistoryEntry]:
        """Return the current ordered view once."""
        owner, path = self._path(owner_id)
        return build_history_view(owner, await self.store.list_all(path))

    async def get_entry(self, entry_id: str, owner_id: Optional[str] = None) -> Optional[HistoryEntry]:
        owner, path = self._path(owner_id)
        document = await self.store.get(path, entry_id)
        if document is None:
            return None
        return HistoryEntry.from_document(document[0], owner, document[1])

    async def append(self, record: HistoryRecord) -> str:
        """Create a history entry and return its id. Failures are reported, never retried.

        Raises:
            AuthUnavailableError: If nobody is signed in.
            PersistenceError: If the store rejects the write.
        """
        _, path = self._path()
        try:
            entry_id = await self.store.add(path, record.to_document())
        except Exception as exc:
            LOGGER.error("Error adding history document: %s", exc)
            raise PersistenceError(f"Failed to save history: {exc}") from exc
        LOGGER.info("Translation history added successfully (id=%s).", entry_id)
        return entry_id

    async def patch(self, entry_id: str, fields: Dict[str, Any]) -> None:
        """Update `isFavorite` and/or `notes` on an entry.

        Raises:
            InvalidPatchError: If other fields are named.
            KeyError: If the entry does not exist.
            AuthUnavailableError: If nobody is signed in.
            PersistenceError: If the store rejects the write.
        """
        changes = validate_patch(fields)
        _, path = self._path()
        try:
            await self.store.update(path, entry_id, changes)
        except KeyError:
            raise
        except Exception as exc:
            LOGGER.error("Error updating history document %s: %s", entry_id, exc)
            raise PersistenceError(f"Failed to update history: {exc}") from exc
        LOGGER.info("History item %s updated successfully.", entry_id)

    async def toggle_favorite(self, entry_id: str, current_status: bool) -> bool:
        """Flip the favorite flag relative to the status the caller last saw."""
        new_status = not current_status
        await self.patch(entry_id, {FIELD_IS_FAVORITE: new_status})
        return new_status

    async def save_note(self, entry_id: str, note: str) -> None:
        await self.patch(entry_id, {FIELD_NOTES: note})
