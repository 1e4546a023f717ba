"""OpenAI Responses API client for plate recognition."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from buffet_tracker.errors import UpstreamError
from buffet_tracker.services.recognition import RecognitionClient


@dataclass
class OpenAIRecognitionClient(RecognitionClient):
    """Recognition client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIRecognitionClient":
        """Create an OpenAI recognition client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(self, *, model: str, prompt: str, image_data_url: str) -> str:
        """Send the prompt and image, returning the reply text."""
        response = await self.client.responses.create(
            model=model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            text={"format": {"type": "json_object"}},
            store=False,
        )
        output_text = response.output_text
        if not output_text:
            raise UpstreamError("OpenAI returned an empty response")
        return output_text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
