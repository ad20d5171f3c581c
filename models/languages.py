"""Supported target languages and their speech-synthesis locales."""

from __future__ import annotations

from typing import Dict, List

SUPPORTED_LANGUAGES: List[str] = [
    "English", "Spanish", "French", "German", "Italian", "Portuguese", "Hindi",
    "Chinese (Simplified)", "Japanese", "Korean", "Arabic", "Russian", "Bengali",
    "Punjabi", "Telugu", "Marathi", "Tamil", "Urdu", "Gujarati", "Kannada", "Malayalam",
]

DEFAULT_LANGUAGE = "English"

FALLBACK_SPEECH_LOCALE = "en-US"

SPEECH_LOCALES: Dict[str, str] = {
    "Chinese (Simplified)": "zh-CN",
    "Japanese": "ja-JP",
    "Korean": "ko-KR",
    "Arabic": "ar-SA",
    "Russian": "ru-RU",
    "Hindi": "hi-IN",
    "Spanish": "es-ES",
    "French": "fr-FR",
    "German": "de-DE",
    "Italian": "it-IT",
    "Portuguese": "pt-PT",
}


def is_supported(language: str) -> bool:
    return language in SUPPORTED_LANGUAGES


def validate_language(language: str) -> str:
    """Return the language unchanged, or raise ValueError if it is not offered."""
    if not is_supported(language):
        raise ValueError(f"Unsupported target language '{language}'.")
    return language


def speech_locale(language: str) -> str:
    """Return the speech locale for a target language, defaulting to US English."""
    return SPEECH_LOCALES.get(language, FALLBACK_SPEECH_LOCALE)


def language_options() -> List[Dict[str, str]]:
    return [{"name": name, "speech_locale": speech_locale(name)} for name in SUPPORTED_LANGUAGES]
