from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel

from controllers.history_controller import (
	get_thumbnail,
	list_history,
	patch_history,
	save_note,
	toggle_favorite,
)

router = APIRouter(prefix="/api/history")


class NotePayload(BaseModel):
	notes: str


@router.get("")
async def list_history_route(request: Request):
	try:
		return await list_history(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.patch("/{entry_id}")
async def patch_history_route(request: Request, entry_id: str, payload: Dict[str, Any] = Body(...)):
	"""Update favorite status and/or notes; any other field is rejected."""
	try:
		return await patch_history(request, entry_id, payload)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{entry_id}/favorite")
async def toggle_favorite_route(request: Request, entry_id: str):
	try:
		return await toggle_favorite(request, entry_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/{entry_id}/notes")
async def save_note_route(request: Request, entry_id: str, payload: NotePayload):
	try:
		return await save_note(request, entry_id, payload.notes)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{entry_id}/thumbnail")
async def thumbnail_route(request: Request, entry_id: str):
	"""Return the JPEG thumbnail stored with a history entry."""
	try:
		return await get_thumbnail(request, entry_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
