"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from services.openai.inference_client import DEFAULT_MODEL


def _optional_float(raw: Optional[str], default: Optional[float]) -> Optional[float]:
    if raw is None:
        return default
    raw = raw.strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class AppSettings:
    """Settings read once at startup.

    Attributes:
        openai_api_key: Key for the inference service (required).
        openai_model: Model name used for extraction, translation, and context.
        database_dir: Directory holding the SQLite database and identity file.
        app_id: Logical application id scoping history collections.
        initial_auth_token: Optional custom token; anonymous sign-in when absent.
        inference_timeout: Seconds before an inference call is abandoned, or None.
        thumbnail_width: Width in pixels of stored history thumbnails.
        overlay_font_path: Optional TrueType font for the overlay.
        log_level: Root logging level name.
    """

    openai_api_key: str
    openai_model: str = DEFAULT_MODEL
    database_dir: Optional[Path] = None
    app_id: str = "default-app-id"
    initial_auth_token: Optional[str] = None
    inference_timeout: Optional[float] = 60.0
    thumbnail_width: int = 100
    overlay_font_path: Optional[str] = None
    log_level: str = "INFO"

    @staticmethod
    def log_level_from_env() -> str:
        """Logging is configured before the full settings (and their required key) are read."""
        return (os.getenv("LOG_LEVEL") or "INFO").upper()

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Build settings from environment variables.

        Raises:
            RuntimeError: If OPENAI_API_KEY is missing or a numeric value is malformed.
        """
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")

        database_dir = os.getenv("DATABASE_DIR")
        try:
            timeout = _optional_float(os.getenv("INFERENCE_TIMEOUT_SECONDS"), 60.0)
            thumbnail_width = int(os.getenv("THUMBNAIL_WIDTH", "100"))
        except ValueError as exc:
            raise RuntimeError("INFERENCE_TIMEOUT_SECONDS and THUMBNAIL_WIDTH must be numeric") from exc
        if thumbnail_width <= 0:
            raise RuntimeError("THUMBNAIL_WIDTH must be a positive integer")

        return cls(
            openai_api_key=api_key,
            openai_model=os.getenv("OPENAI_MODEL") or DEFAULT_MODEL,
            database_dir=Path(database_dir).expanduser() if database_dir else None,
            app_id=os.getenv("APP_ID") or "default-app-id",
            initial_auth_token=os.getenv("INITIAL_AUTH_TOKEN") or None,
            inference_timeout=timeout,
            thumbnail_width=thumbnail_width,
            overlay_font_path=os.getenv("OVERLAY_FONT_PATH") or None,
            log_level=cls.log_level_from_env(),
        )
