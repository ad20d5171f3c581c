import inspect
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from controllers.session_controller import SessionController
from dal.document_dal import DocumentDAL
from models.errors import AuthUnavailableError
from routes.history_route import router as history_router
from routes.history_ws import router as history_ws_router
from routes.translate_route import router as translate_router
from services.auth_provider import AuthProvider
from services.document_store import SQLiteDocumentStore
from services.history_store import HistoryStore
from services.image_codec import ImageCodec
from services.inference_pipeline import InferencePipeline
from services.openai.inference_client import InferenceClient
from services.overlay_renderer import OverlayRenderer
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import AppSettings

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite document store (created on first use at DATABASE_DIR/app.db)
      - the OpenAI async client used for extraction, translation and context
      - the signed-in identity, history store and session controller
    and attach them to `app.state`.
    """
    settings = AppSettings.from_env()
    app.state.settings = settings

    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    try:
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = openai_client

    auth_provider = AuthProvider(
        identity_path=db_initializer.db_dir / "identity",
        initial_token=settings.initial_auth_token,
    )
    try:
        user = await auth_provider.ensure_signed_in()
        LOGGER.info("History owner: %s (anonymous=%s)", user.uid, user.is_anonymous)
    except AuthUnavailableError as exc:
        # History stays unavailable; translation still works.
        LOGGER.error("Sign-in failed at startup: %s", exc)
    app.state.auth_provider = auth_provider

    document_store = SQLiteDocumentStore(DocumentDAL(db_initializer))
    app.state.document_store = document_store

    history_store = HistoryStore(document_store, auth_provider, settings.app_id)
    app.state.history_store = history_store

    codec = ImageCodec()
    inference = InferenceClient(openai_client, model=settings.openai_model, timeout=settings.inference_timeout)
    app.state.session_controller = SessionController(
        pipeline=InferencePipeline(inference),
        renderer=OverlayRenderer(codec=codec, font_path=settings.overlay_font_path),
        codec=codec,
        history=history_store,
        thumbnail_width=settings.thumbnail_width,
    )

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    LOGGER.warning("Error closing OpenAI client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    level = AppSettings.log_level_from_env()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Health check reporting which process-wide services are initialized.
        """
        state = request.app.state
        auth_provider = getattr(state, "auth_provider", None)
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "openai_available": getattr(state, "openai_client", None) is not None,
            "signed_in": auth_provider is not None and auth_provider.current_user is not None,
            "history_available": getattr(state, "history_store", None) is not None,
            "translation_available": getattr(state, "session_controller", None) is not None,
        }

    # Register application routers
    app.include_router(translate_router)
    app.include_router(history_router)
    app.include_router(history_ws_router)

    return app


app = create_app()
