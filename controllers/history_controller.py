import base64
import binascii
import logging
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import HTTPException, Request
from fastapi.responses import Response

from models.errors import AuthUnavailableError, InvalidPatchError, PersistenceError
from services.history_store import HistoryStore

LOGGER = logging.getLogger(__name__)


def _require_history_store(request: Request) -> HistoryStore:
    store = getattr(request.app.state, "history_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="History store unavailable")
    return store


async def list_history(request: Request) -> List[Dict[str, Any]]:
    """Return the signed-in user's history, newest first."""
    store = _require_history_store(request)
    try:
        entries = await store.snapshot()
    except AuthUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.user_message)
    return [entry.to_json() for entry in entries]


async def _mutate(
    request: Request,
    entry_id: str,
    mutation: Callable[[HistoryStore], Awaitable[Any]],
) -> Dict[str, Any]:
    """Run a history mutation and return the updated entry.

    Raises:
        HTTPException: 400 for fields other than `isFavorite`/`notes`, 404 for an
            unknown entry, 503 when nobody is signed in, 500 if the write fails.
    """
    store = _require_history_store(request)
    try:
        await mutation(store)
        entry = await store.get_entry(entry_id)
    except InvalidPatchError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except KeyError:
        raise HTTPException(status_code=404, detail="History entry not found")
    except AuthUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.user_message)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=exc.user_message)
    if entry is None:
        raise HTTPException(status_code=404, detail="History entry not found")
    return entry.to_json()


async def patch_history(request: Request, entry_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a favorite/notes patch and return the updated entry."""
    return await _mutate(request, entry_id, lambda store: store.patch(entry_id, fields))


async def toggle_favorite(request: Request, entry_id: str) -> Dict[str, Any]:
    """Flip `isFavorite` relative to the stored value."""
    store = _require_history_store(request)
    try:
        entry = await store.get_entry(entry_id)
    except AuthUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.user_message)
    if entry is None:
        raise HTTPException(status_code=404, detail="History entry not found")
    return await _mutate(request, entry_id, lambda s: s.toggle_favorite(entry_id, entry.is_favorite))


async def save_note(request: Request, entry_id: str, note: str) -> Dict[str, Any]:
    return await _mutate(request, entry_id, lambda store: store.save_note(entry_id, note))


async def get_thumbnail(request: Request, entry_id: str) -> Response:
    """Return the stored JPEG thumbnail for a history entry.

    Raises:
        HTTPException(404) if the entry or its thumbnail is not found.
    """
    store = _require_history_store(request)
    try:
        entry = await store.get_entry(entry_id)
    except AuthUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.user_message)
    if entry is None:
        raise HTTPException(status_code=404, detail="History entry not found")
    if not entry.thumbnail:
        raise HTTPException(status_code=404, detail="Thumbnail not available for this entry")

    try:
        content = base64.b64decode(entry.thumbnail, validate=True)
    except (binascii.Error, ValueError):
        LOGGER.error("Stored thumbnail for %s is not valid base64", entry_id)
        raise HTTPException(status_code=500, detail="Stored thumbnail is corrupt")
    return Response(content=content, media_type="image/jpeg")
