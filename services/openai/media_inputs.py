"""Utilities to build input payloads for the Responses API."""

from typing import Any, Dict, List

from models.transport_image import TransportImage


def build_text_inputs(prompt: str) -> List[Dict[str, Any]]:
    """Build a single-message text request."""
    return [
        {"type": "message", "role": "user", "content": [{"type": "input_text", "text": prompt}]},
    ]


def build_image_inputs(prompt: str, image: TransportImage) -> List[Dict[str, Any]]:
    """Build a request carrying the instruction and the image as one user message."""
    return [
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": prompt},
                {"type": "input_image", "image_url": image.data_url()},
            ],
        },
    ]
