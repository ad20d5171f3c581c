"""Description: Text extraction, translation, and context calls using OpenAI's Responses API."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.errors import InferenceServiceError
from models.transport_image import TransportImage
from services.openai.media_inputs import build_image_inputs, build_text_inputs
from services.openai.response_parser import extract_first_text, extract_usage
from services.openai.translation_prompts import (
    build_context_prompt,
    build_extraction_prompt,
    build_translation_prompt,
)

DEFAULT_MODEL = "gpt-4o-mini"


class InferenceClient:
    """Class for the three inference calls made during a translation run.

    Args:
        client: Shared async OpenAI client.
        model: Model used for every call.
        timeout: Seconds before a call is abandoned; None waits indefinitely.
    """

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL, timeout: Optional[float] = None) -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.timeout = timeout

    async def extract(self, image: TransportImage) -> str:
        """Return all visible text in the image, or "" when the service gives no candidate."""
        return await self._complete("extract", build_image_inputs(build_extraction_prompt(), image))

    async def translate(self, text: str, target_language: str) -> str:
        return await self._complete("translate", build_text_inputs(build_translation_prompt(text, target_language)))

    async def contextualize(self, text: str) -> str:
        return await self._complete("contextualize", build_text_inputs(build_context_prompt(text)))

    async def _complete(self, call: str, inputs: List[Dict[str, Any]]) -> str:
        start_time = time.time()
        response = await self._create_response(call, inputs)
        text = extract_first_text(response)
        usage = extract_usage(response)
        logging.info(
            "Inference call '%s' finished in %.3fs (input_tokens=%s, output_tokens=%s)",
            call, time.time() - start_time, usage["input_tokens"], usage["output_tokens"],
        )
        return text

    async def _create_response(self, call: str, inputs: List[Dict[str, Any]]) -> Any:
        """Send the request, converting every failure into InferenceServiceError."""
        try:
            request = self.client.responses.create(model=self.model, input=inputs)
            if self.timeout:
                return await asyncio.wait_for(request, timeout=self.timeout)
            return await request
        except asyncio.TimeoutError as exc:
            logging.error("Inference call '%s' timed out after %ss", call, self.timeout)
            raise InferenceServiceError(f"{call} timed out after {self.timeout}s") from exc
        except Exception as exc:
            logging.error("Error during OpenAI Responses API call '%s': %s", call, exc)
            raise InferenceServiceError(f"{call} failed: {exc}") from exc

# end of InferenceClient
