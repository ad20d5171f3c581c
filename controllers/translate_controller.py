from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import Response

from controllers.session_controller import SessionController
from models.errors import NoImageError
from models.languages import language_options
from utils.media_validation import read_image_bytes


def _require_session_controller(request: Request) -> SessionController:
    controller = getattr(request.app.state, "session_controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Translation service unavailable")
    return controller


async def translate_image(
    request: Request,
    image_file: Optional[UploadFile],
    target_language: str,
) -> Dict[str, Any]:
    """Run a translation session for an uploaded or captured image.

    Args:
        request: FastAPI Request (used to access app.state.session_controller).
        image_file: Uploaded image; a missing or empty upload is a NoImage error.
        target_language: One of the supported language names.

    Returns:
        The session view. A failed pipeline run is reported through the
        session's `stage` and `error` fields, not as an HTTP error.
    """
    controller = _require_session_controller(request)
    image_bytes = await read_image_bytes(image_file) if image_file is not None else None

    try:
        session = await controller.start(image_bytes, target_language)
    except NoImageError as exc:
        raise HTTPException(status_code=400, detail=exc.user_message)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return session.to_json()


async def get_session(request: Request) -> Dict[str, Any]:
    return _require_session_controller(request).current.to_json()


async def reset_session(request: Request) -> Dict[str, Any]:
    return _require_session_controller(request).reset().to_json()


async def get_overlay(request: Request) -> Response:
    """Return the overlay JPEG for the current session.

    Raises:
        HTTPException: 404 if the current session has no overlay.
    """
    session = _require_session_controller(request).current
    if session.overlay_image is None:
        raise HTTPException(status_code=404, detail="No overlay available")
    return Response(content=session.overlay_image.to_bytes(), media_type=session.overlay_image.mime_type)


async def list_languages() -> List[Dict[str, str]]:
    return language_options()
