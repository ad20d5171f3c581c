import itertools

import pytest

from models.errors import AuthUnavailableError, InvalidPatchError, PersistenceError
from models.history_entry import HistoryRecord
from services.auth_provider import AuthProvider
from services.history_store import HistoryStore, build_history_view, collection_path, validate_patch


def _record(text="OPEN", language="Spanish"):
    return HistoryRecord(
        original_text=text,
        translated_text=f"{text} ({language})",
        contextual_info="A sign.",
        target_language=language,
        thumbnail="QUJD",
    )


class BrokenStore:
    async def add(self, path, data):
        raise RuntimeError("database is locked")

    async def update(self, path, doc_id, fields):
        raise RuntimeError("database is locked")


def test_collection_path_is_scoped_by_app_and_owner():
    assert collection_path("app-1", "user-9") == "artifacts/app-1/users/user-9/translations"


def test_view_is_sorted_newest_first_with_pending_timestamps_last():
    documents = [
        ("t3", {"timestamp": 3.0}),
        ("t1", {"timestamp": 1.0}),
        ("pending", {}),
        ("t2", {"timestamp": 2.0}),
    ]
    for permutation in itertools.permutations(documents):
        view = build_history_view("owner", permutation)
        assert [entry.id for entry in view] == ["t3", "t2", "t1", "pending"]


@pytest.mark.parametrize(
    "fields",
    [{}, {"originalText": "changed"}, {"notes": "ok", "translatedText": "x"}, {"isFavorite": "yes"}, {"notes": 3}],
)
def test_validate_patch_rejects_everything_but_favorite_and_notes(fields):
    with pytest.raises(InvalidPatchError):
        validate_patch(fields)


def test_validate_patch_accepts_favorite_and_notes():
    assert validate_patch({"isFavorite": True, "notes": "try the churros"}) == {
        "isFavorite": True,
        "notes": "try the churros",
    }


@pytest.mark.asyncio
async def test_append_creates_entry_with_server_timestamp(history_store):
    entry_id = await history_store.append(_record())

    view = await history_store.snapshot()
    assert [entry.id for entry in view] == [entry_id]
    entry = view[0]
    assert entry.original_text == "OPEN"
    assert entry.translated_text == "OPEN (Spanish)"
    assert entry.target_language == "Spanish"
    assert entry.thumbnail == "QUJD"
    assert entry.is_favorite is False
    assert entry.notes == ""
    assert entry.created_at is not None


@pytest.mark.asyncio
async def test_toggle_favorite_and_save_note(history_store):
    entry_id = await history_store.append(_record())

    assert await history_store.toggle_favorite(entry_id, False) is True
    await history_store.save_note(entry_id, "seen in Madrid")
    entry = await history_store.get_entry(entry_id)
    assert entry.is_favorite is True
    assert entry.notes == "seen in Madrid"
    assert entry.original_text == "OPEN"

    assert await history_store.toggle_favorite(entry_id, True) is False
    assert (await history_store.get_entry(entry_id)).is_favorite is False


@pytest.mark.asyncio
async def test_patch_cannot_touch_translation_fields(history_store):
    entry_id = await history_store.append(_record())

    with pytest.raises(InvalidPatchError):
        await history_store.patch(entry_id, {"translatedText": "hacked"})
    assert (await history_store.get_entry(entry_id)).translated_text == "OPEN (Spanish)"


@pytest.mark.asyncio
async def test_patch_unknown_entry_raises_key_error(history_store):
    with pytest.raises(KeyError):
        await history_store.patch("missing", {"notes": "x"})


@pytest.mark.asyncio
async def test_history_is_private_to_each_owner(document_store, history_store):
    await history_store.append(_record())

    other = AuthProvider(initial_token="someone-else")
    await other.ensure_signed_in()
    assert await HistoryStore(document_store, other, "test-app").snapshot() == []


@pytest.mark.asyncio
async def test_subscribe_streams_full_snapshots(document_store, history_store):
    subscription = history_store.subscribe()

    assert await subscription.__anext__() == []

    first_id = await history_store.append(_record("OPEN"))
    view = await subscription.__anext__()
    assert [entry.id for entry in view] == [first_id]

    second_id = await history_store.append(_record("EXIT"))
    view = await subscription.__anext__()
    assert [entry.id for entry in view] == [second_id, first_id]

    await history_store.toggle_favorite(first_id, False)
    view = await subscription.__anext__()
    assert {entry.id: entry.is_favorite for entry in view} == {first_id: True, second_id: False}

    await subscription.aclose()
    owner = history_store.auth.require_user().uid
    assert document_store.listener_count(collection_path("test-app", owner)) == 0


@pytest.mark.asyncio
async def test_requires_signed_in_user(document_store):
    store = HistoryStore(document_store, AuthProvider(), "test-app")

    with pytest.raises(AuthUnavailableError):
        await store.append(_record())
    with pytest.raises(AuthUnavailableError):
        await store.snapshot()


@pytest.mark.asyncio
async def test_store_failures_become_persistence_errors(signed_in_auth):
    store = HistoryStore(BrokenStore(), signed_in_auth, "test-app")

    with pytest.raises(PersistenceError):
        await store.append(_record())
    with pytest.raises(PersistenceError):
        await store.patch("any", {"notes": "x"})
