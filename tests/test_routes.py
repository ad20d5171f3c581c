import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeInference
from controllers.session_controller import SessionController
from dal.document_dal import DocumentDAL
from routes.history_route import router as history_router
from routes.history_ws import router as history_ws_router
from routes.translate_route import router as translate_router
from services.auth_provider import AuthProvider
from services.document_store import SQLiteDocumentStore
from services.history_store import HistoryStore
from services.image_codec import ImageCodec
from services.inference_pipeline import InferencePipeline
from services.overlay_renderer import OverlayRenderer
from utils.database_init import AsyncDatabaseInitializer


@pytest.fixture
def app(tmp_path):
    auth = AuthProvider(initial_token="route-user")
    asyncio.run(auth.ensure_signed_in())
    history = HistoryStore(
        SQLiteDocumentStore(DocumentDAL(AsyncDatabaseInitializer(tmp_path))),
        auth,
        "test-app",
    )
    codec = ImageCodec()

    app = FastAPI()
    app.include_router(translate_router)
    app.include_router(history_router)
    app.include_router(history_ws_router)
    app.state.history_store = history
    app.state.session_controller = SessionController(
        pipeline=InferencePipeline(FakeInference()),
        renderer=OverlayRenderer(codec=codec),
        codec=codec,
        history=history,
    )
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _translate(client, image, language="Spanish"):
    return client.post(
        "/api/translate",
        files={"image": ("sign.png", image, "image/png")},
        data={"target_language": language},
    )


def test_languages_include_speech_locales(client):
    languages = client.get("/api/languages").json()

    assert len(languages) == 21
    by_name = {item["name"]: item["speech_locale"] for item in languages}
    assert by_name["Japanese"] == "ja-JP"
    assert by_name["Bengali"] == "en-US"


def test_translate_without_image_is_bad_request(client):
    response = client.post("/api/translate", data={"target_language": "Spanish"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload or capture an image first to translate."


def test_translate_rejects_unknown_language_and_non_images(client, png_bytes):
    assert _translate(client, png_bytes, "Klingon").status_code == 400
    response = client.post(
        "/api/translate",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        data={"target_language": "Spanish"},
    )
    assert response.status_code == 415


def test_translate_session_overlay_and_reset(client, png_bytes):
    response = _translate(client, png_bytes)

    assert response.status_code == 200
    session = response.json()
    assert session["stage"] == "Done"
    assert session["extracted_text"] == "OPEN"
    assert session["translated_text"] == "ABIERTO"
    assert session["has_overlay"] is True
    assert session["history_id"]

    assert client.get("/api/translate/session").json()["generation"] == session["generation"]

    overlay = client.get("/api/translate/session/overlay")
    assert overlay.status_code == 200
    assert overlay.headers["content-type"] == "image/jpeg"
    assert overlay.content[:3] == b"\xff\xd8\xff"

    reset = client.post("/api/translate/reset").json()
    assert reset["stage"] == "Idle"
    assert reset["target_language"] == "Spanish"
    assert client.get("/api/translate/session/overlay").status_code == 404


def test_history_actions(client, png_bytes):
    entry_id = _translate(client, png_bytes).json()["history_id"]

    entries = client.get("/api/history").json()
    assert [entry["id"] for entry in entries] == [entry_id]
    assert entries[0]["originalText"] == "OPEN"
    assert entries[0]["hasThumbnail"] is True
    assert entries[0]["isFavorite"] is False

    favorite = client.post(f"/api/history/{entry_id}/favorite")
    assert favorite.json()["isFavorite"] is True

    noted = client.put(f"/api/history/{entry_id}/notes", json={"notes": "pharmacy door"})
    assert noted.json()["notes"] == "pharmacy door"

    patched = client.patch(f"/api/history/{entry_id}", json={"isFavorite": False, "notes": ""})
    assert patched.status_code == 200
    assert patched.json()["isFavorite"] is False

    thumbnail = client.get(f"/api/history/{entry_id}/thumbnail")
    assert thumbnail.status_code == 200
    assert thumbnail.headers["content-type"] == "image/jpeg"


def test_history_patch_errors(client, png_bytes):
    entry_id = _translate(client, png_bytes).json()["history_id"]

    assert client.patch(f"/api/history/{entry_id}", json={"originalText": "x"}).status_code == 400
    assert client.patch("/api/history/missing", json={"notes": "x"}).status_code == 404
    assert client.post("/api/history/missing/favorite").status_code == 404
    assert client.get("/api/history/missing/thumbnail").status_code == 404


def test_history_unavailable_without_sign_in(app, client):
    app.state.history_store.auth.sign_out()

    response = client.get("/api/history")

    assert response.status_code == 503
    assert response.json()["detail"] == "Cannot access history: Authentication not ready."


def test_history_socket_streams_snapshots(client, png_bytes):
    with client.websocket_connect("/ws/history") as websocket:
        assert websocket.receive_json() == {"type": "history", "entries": []}

        entry_id = _translate(client, png_bytes).json()["history_id"]
        update = websocket.receive_json()
        assert [entry["id"] for entry in update["entries"]] == [entry_id]

        client.post(f"/api/history/{entry_id}/favorite")
        update = websocket.receive_json()
        assert update["entries"][0]["isFavorite"] is True


def test_history_socket_reports_missing_sign_in(app, client):
    app.state.history_store.auth.sign_out()

    with client.websocket_connect("/ws/history") as websocket:
        message = websocket.receive_json()

    assert message["type"] == "error"


def test_health_reports_initialized_services(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("DATABASE_DIR", str(tmp_path))
    monkeypatch.setenv("INITIAL_AUTH_TOKEN", "health-user")

    from main import create_app

    with TestClient(create_app()) as test_client:
        health = test_client.get("/health").json()

    assert health == {
        "ok": True,
        "db_initialized": True,
        "openai_available": True,
        "signed_in": True,
        "history_available": True,
        "translation_available": True,
    }
