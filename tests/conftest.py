"""Shared fixtures: in-memory images, a scriptable inference fake, and history fakes."""

from __future__ import annotations

import asyncio
import io
from typing import Callable, Dict, List, Optional, Union

import pytest
import pytest_asyncio
from PIL import Image

from dal.document_dal import DocumentDAL
from models.history_entry import HistoryRecord
from services.auth_provider import AuthProvider
from services.document_store import SQLiteDocumentStore
from services.history_store import HistoryStore
from utils.database_init import AsyncDatabaseInitializer

Reply = Union[str, Exception, Callable[..., str]]


def make_image_bytes(width: int = 320, height: int = 240, color=(40, 90, 160), fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" and len(color) == 4 else "RGB"
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


class FakeInference:
    """Stand-in for InferenceClient with per-call scripted replies.

    A reply may be a string, an exception instance (raised), or a callable
    receiving the call arguments. An `asyncio.Event` in `gates[call]` makes
    that call wait until the test sets it.
    """

    def __init__(self, extract: Reply = "OPEN", translate: Reply = "ABIERTO", contextualize: Reply = "A common shop sign.") -> None:
        self.replies: Dict[str, Reply] = {"extract": extract, "translate": translate, "contextualize": contextualize}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[tuple] = []

    async def _reply(self, call: str, *args) -> str:
        self.calls.append((call,) + args)
        gate = self.gates.get(call)
        if gate is not None:
            await gate.wait()
        reply = self.replies[call]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(*args)
        return reply

    async def extract(self, image) -> str:
        return await self._reply("extract", image)

    async def translate(self, text: str, target_language: str) -> str:
        return await self._reply("translate", text, target_language)

    async def contextualize(self, text: str) -> str:
        return await self._reply("contextualize", text)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


class RecordingHistory:
    """Collects appended records; optionally fails every append."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.records: List[HistoryRecord] = []
        self.error = error

    async def append(self, record: HistoryRecord) -> str:
        if self.error is not None:
            raise self.error
        self.records.append(record)
        return f"entry-{len(self.records)}"


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def db_initializer(tmp_path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture
def document_store(db_initializer) -> SQLiteDocumentStore:
    return SQLiteDocumentStore(DocumentDAL(db_initializer))


@pytest_asyncio.fixture
async def signed_in_auth(tmp_path) -> AuthProvider:
    auth = AuthProvider(identity_path=tmp_path / "identity", initial_token="test-user-token")
    await auth.ensure_signed_in()
    return auth


@pytest_asyncio.fixture
async def history_store(document_store, signed_in_auth) -> HistoryStore:
    return HistoryStore(document_store, signed_in_auth, "test-app")
