"""OpenAI Responses API client for shot feedback."""

from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from shot_assessment.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI
    http_client: httpx.AsyncClient | None = None

    @classmethod
    def create(cls, api_key: str, timeout_seconds: float) -> "OpenAIVisionClient":
        """Create an OpenAI vision client with a managed httpx session."""
        http_client = httpx.AsyncClient(timeout=timeout_seconds)
        return cls(
            client=AsyncOpenAI(
                api_key=api_key, http_client=http_client, max_retries=0
            ),
            http_client=http_client,
        )

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
        """Call OpenAI Responses API with the system prompt as instructions."""
        response = await self.client.responses.create(
            model=model,
            instructions=system_prompt,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": user_prompt},
                        {
                            "type": "input_image",
                            "image_url": image_data_url,
                            "detail": image_detail,
                        },
                    ],
                }
            ],
            max_output_tokens=max_output_tokens,
            temperature=temperature,
            store=store,
        )
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self.http_client is not None:
            await self.http_client.aclose()
