"""Prompt builders for text extraction, translation, and cultural context."""

NO_TEXT_SENTINEL = "No text could be extracted"

NO_TEXT_MESSAGE = "No text could be extracted from the image. Please try a clearer image."


def build_extraction_prompt() -> str:
    """Return the fixed instruction sent alongside the captured image."""
    return (
        "Extract all visible text from this image. If there are multiple distinct blocks of text "
        "(e.g., separate signs, lists, different paragraphs), please list them individually, "
        "perhaps with numbering or bullet points. Do not include any descriptions of the image, "
        "only the extracted text."
    )


def build_translation_prompt(text: str, target_language: str) -> str:
    return f'Translate the following text into {target_language}: "{text}"'


def build_context_prompt(text: str) -> str:
    """Return the request for a short cultural note about the original text."""
    return (
        "Provide a brief cultural context or additional relevant information "
        "(e.g., common usage, related items, cultural nuances) for the following text: "
        f'"{text}". If it\'s a common word, explain its typical usage. '
        "If it's a food item, describe it briefly. Keep it concise."
    )
