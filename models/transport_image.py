from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class TransportImage:
    """Base64-encoded image as sent to the inference service and stored in history."""

    data: str
    mime_type: str = "image/jpeg"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"
