"""SQLite-backed document store with live collection snapshots."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from dal.document_dal import DocumentDAL, StoredDocument

LOGGER = logging.getLogger(__name__)


class SQLiteDocumentStore:
	"""Persist documents per collection path and stream full snapshots to listeners.

	Every write to a collection re-reads it and pushes the complete snapshot to
	each listener of that path. Listeners only ever see whole snapshots.
	"""

	def __init__(self, dal: DocumentDAL) -> None:
		self._dal = dal
		self._listeners: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

	async def add(self, collection_path: str, data: Dict[str, Any]) -> str:
		"""Create a document with a server timestamp and return its id."""
		doc_id = await self._dal.create_document(collection_path, data)
		await self._publish(collection_path)
		return doc_id

	async def update(self, collection_path: str, doc_id: str, fields: Dict[str, Any]) -> None:
		"""Merge fields into an existing document or raise KeyError if it is missing."""
		changed = await self._dal.update_document(collection_path, doc_id, fields)
		if not changed:
			raise KeyError(f"Document {doc_id} not found")
		await self._publish(collection_path)

	async def get(self, collection_path: str, doc_id: str) -> Optional[StoredDocument]:
		return await self._dal.get_document(collection_path, doc_id)

	async def list_all(self, collection_path: str) -> List[StoredDocument]:
		return await self._dal.list_documents(collection_path)

	async def listen(self, collection_path: str) -> AsyncIterator[List[StoredDocument]]:
		"""Yield the current snapshot, then a new one after each write to the path."""
		queue: asyncio.Queue = asyncio.Queue()
		self._listeners[collection_path].add(queue)
		try:
			yield await self._dal.list_documents(collection_path)
			while True:
				snapshot = await queue.get()
				while not queue.empty():
					snapshot = queue.get_nowait()
				yield snapshot
		finally:
			listeners = self._listeners.get(collection_path)
			if listeners is not None:
				listeners.discard(queue)
				if not listeners:
					del self._listeners[collection_path]

	def listener_count(self, collection_path: str) -> int:
		return len(self._listeners.get(collection_path, ()))

	async def _publish(self, collection_path: str) -> None:
		listeners = self._listeners.get(collection_path)
		if not listeners:
			return
		snapshot = await self._dal.list_documents(collection_path)
		LOGGER.debug("Publishing %d documents to %d listeners of %s", len(snapshot), len(listeners), collection_path)
		for queue in list(listeners):
			queue.put_nowait(snapshot)
