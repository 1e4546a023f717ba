"""Google Gemini generateContent client for plate recognition."""

from dataclasses import dataclass

import httpx

from buffet_tracker.errors import UpstreamError
from buffet_tracker.services.recognition import REPLY_FORMAT, RecognitionClient


@dataclass
class HttpxGeminiClient(RecognitionClient):
    """HTTPX-backed Gemini client."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxGeminiClient":
        """Create a Gemini client with a managed httpx session."""
        return cls(api_key=api_key, base_url=base_url, http_client=httpx.AsyncClient())

    async def complete(self, *, model: str, prompt: str, image_data_url: str) -> str:
        """Call generateContent with inline image data."""
        mime_type, data = _split_data_url(image_data_url)
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"text": f"Analyze image. {REPLY_FORMAT}"},
                        {"inline_data": {"mime_type": mime_type, "data": data}},
                    ]
                }
            ],
            "generationConfig": {"response_mime_type": "application/json"},
        }
        response = await self.http_client.post(
            f"{self.base_url}/models/{model}:generateContent",
            params={"key": self.api_key},
            json=payload,
            timeout=60,
        )
        body = response.json()
        error = body.get("error") if isinstance(body, dict) else None
        if error:
            message = error.get("message") if isinstance(error, dict) else error
            raise UpstreamError(f"Gemini error: {message}")
        response.raise_for_status()
        try:
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Gemini returned no candidates") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _split_data_url(data_url: str) -> tuple[str, str]:
    header, _, data = data_url.partition(",")
    mime_type = header.removeprefix("data:").split(";")[0] or "image/jpeg"
    return mime_type, data
