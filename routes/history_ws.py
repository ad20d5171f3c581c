"""WebSocket endpoint streaming the live translation history."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from models.errors import AuthUnavailableError
from services.history_store import HistoryStore

router = APIRouter()

LOGGER = logging.getLogger(__name__)


def _require_history_store(websocket: WebSocket) -> HistoryStore:
	store = getattr(websocket.app.state, "history_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="History store unavailable")
	return store


async def _wait_for_disconnect(websocket: WebSocket) -> None:
	while True:
		message = await websocket.receive()
		if message["type"] == "websocket.disconnect":
			return


async def _stream_history(websocket: WebSocket, store: HistoryStore) -> None:
	subscription = store.subscribe()
	try:
		async for entries in subscription:
			await websocket.send_text(
				json.dumps({"type": "history", "entries": [entry.to_json() for entry in entries]})
			)
	finally:
		await subscription.aclose()


@router.websocket("/ws/history")
async def history_socket(websocket: WebSocket, store: HistoryStore = Depends(_require_history_store)):
	"""Send the full ordered history on connect and again after every change."""
	await websocket.accept()
	try:
		store.auth.require_user()
	except AuthUnavailableError as exc:
		await websocket.send_text(json.dumps({"type": "error", "detail": exc.user_message}))
		await websocket.close()
		return

	stream = asyncio.create_task(_stream_history(websocket, store))
	disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
	done, pending = await asyncio.wait({stream, disconnect}, return_when=asyncio.FIRST_COMPLETED)
	for task in pending:
		task.cancel()
	await asyncio.gather(*pending, return_exceptions=True)

	if stream in done and stream.exception() is not None:
		error = stream.exception()
		if isinstance(error, WebSocketDisconnect):
			return
		LOGGER.error("History stream stopped: %s", error)
		if websocket.application_state == WebSocketState.CONNECTED:
			await websocket.close(code=1011)
