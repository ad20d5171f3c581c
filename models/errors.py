"""Error taxonomy for the translation session and history features.

Fatal pipeline errors (`ExtractionError`, `TranslationError`) stop a run.
Degrade errors (`ContextUnavailableError`, `RenderError`) are absorbed at the
stage that raised them. `PersistenceError` is reported but never retried.
"""

from __future__ import annotations

GENERIC_RETRY_MESSAGE = "Something went wrong while translating the image. Please try again."


class TranslatorError(Exception):
    """Base class for domain errors with a message that is safe to show users."""

    user_message = GENERIC_RETRY_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class NoImageError(TranslatorError):
    user_message = "Please upload or capture an image first to translate."


class InvalidImageError(TranslatorError, ValueError):
    user_message = "The image could not be read."


class InferenceServiceError(RuntimeError):
    """Transport or service failure of a single inference call."""


class ExtractionError(TranslatorError):
    pass


class TranslationError(TranslatorError):
    pass


class ContextUnavailableError(TranslatorError):
    user_message = "No additional context available."


class RenderError(TranslatorError):
    user_message = "The translated text could not be drawn on the image."


class PersistenceError(TranslatorError):
    user_message = "Failed to save history."


class AuthUnavailableError(TranslatorError):
    user_message = "Cannot access history: Authentication not ready."


class InvalidPatchError(TranslatorError, ValueError):
    user_message = "Only favorite status and notes can be updated."
