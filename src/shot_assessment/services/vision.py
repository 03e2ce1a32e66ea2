"""Vision feedback service using LLMs."""

import base64
from dataclasses import dataclass
from typing import Protocol


class VisionClient(Protocol):
    """Interface for text generation over an image."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
        max_output_tokens: int,
        temperature: float,
        image_detail: str,
        store: bool,
    ) -> str:
        """Return the model's text reply for the image."""


@dataclass
class VisionService:
    """Service that packages images and prompts for the vision client."""

    client: VisionClient
    model: str
    max_output_tokens: int = 60
    temperature: float = 0.4
    image_detail: str = "low"
    store: bool = False

    async def describe(
        self, image_bytes: bytes, *, system_prompt: str, user_prompt: str
    ) -> str:
        """Return composition feedback for an image."""
        feedback = await self.client.generate(
            model=self.model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            image_data_url=_to_data_url(image_bytes),
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
            image_detail=self.image_detail,
            store=self.store,
        )
        return feedback.strip()


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
