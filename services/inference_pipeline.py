"""Sequence the extract -> translate -> contextualize inference calls.

Extraction and translation failures abort the run. A context failure only
swaps in a placeholder, since by then the user already has a translation.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from models.errors import ExtractionError, InferenceServiceError, TranslationError
from models.session_models import PipelineRun, PipelineState
from models.transport_image import TransportImage
from services.openai.inference_client import InferenceClient
from services.openai.translation_prompts import NO_TEXT_MESSAGE, NO_TEXT_SENTINEL

LOGGER = logging.getLogger(__name__)

MIN_EXTRACTED_LENGTH = 2
CONTEXT_PLACEHOLDER = "No additional context available."
TRANSLATION_UNAVAILABLE = "Translation could not be generated for the extracted text."

RunListener = Callable[[PipelineRun], None]


def has_usable_text(extracted: str) -> bool:
    """Return False for empty, too-short, or "no text" extraction results."""
    return len(extracted) >= MIN_EXTRACTED_LENGTH and NO_TEXT_SENTINEL not in extracted


class InferencePipeline:
    """Run the three inference stages strictly one after another."""

    def __init__(self, inference: InferenceClient) -> None:
        self.inference = inference

    async def run(
        self,
        image: TransportImage,
        target_language: str,
        on_update: Optional[RunListener] = None,
    ) -> PipelineRun:
        """Run all stages and return the final state.

        `on_update` is called after every state change with the run so far,
        which lets callers show the translation before context arrives.
        """
        run = PipelineRun()

        def transition(state: PipelineState) -> None:
            run.state = state
            if on_update is not None:
                on_update(run)

        transition(PipelineState.EXTRACTING)
        try:
            extracted = await self.inference.extract(image)
        except InferenceServiceError as exc:
            LOGGER.error("Text extraction failed: %s", exc)
            return self._abort(run, ExtractionError(), transition)

        if not has_usable_text(extracted):
            LOGGER.info("No usable text extracted (%d chars)", len(extracted))
            run.extracted_text = extracted or NO_TEXT_MESSAGE
            transition(PipelineState.DONE)
            return run
        run.extracted_text = extracted

        transition(PipelineState.TRANSLATING)
        try:
            translated = await self.inference.translate(extracted, target_language)
        except InferenceServiceError as exc:
            LOGGER.error("Translation into %s failed: %s", target_language, exc)
            return self._abort(run, TranslationError(), transition)

        if not translated:
            run.notice = TRANSLATION_UNAVAILABLE
            transition(PipelineState.DONE)
            return run
        run.translated_text = translated

        transition(PipelineState.CONTEXTUALIZING)
        try:
            run.contextual_info = await self.inference.contextualize(extracted)
        except InferenceServiceError as exc:
            LOGGER.warning("Failed to get contextual info: %s", exc)
            run.contextual_info = CONTEXT_PLACEHOLDER
            run.context_degraded = True

        transition(PipelineState.DONE)
        return run

    @staticmethod
    def _abort(run: PipelineRun, error: Exception, transition: Callable[[PipelineState], None]) -> PipelineRun:
        run.error = error
        run.extracted_text = None
        run.translated_text = None
        run.contextual_info = None
        transition(PipelineState.ABORTED)
        return run
