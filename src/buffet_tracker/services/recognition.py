"""Plate recognition with ordered model fallbacks."""

import base64
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from buffet_tracker.domain.catalog import MenuEntry, PriceMode
from buffet_tracker.domain.recognition import RecognitionResult
from buffet_tracker.errors import InputError, UpstreamError
from buffet_tracker.services.valuation import unit_price

_logger = logging.getLogger(__name__)

REPLY_FORMAT = "Return JSON: { items: [{name, price, calories, count}], comment }"


class RecognitionClient(Protocol):
    """Interface for a multimodal model that describes a plate photo."""

    async def complete(self, *, model: str, prompt: str, image_data_url: str) -> str:
        """Return the model's raw text reply."""


@dataclass(frozen=True)
class RecognitionProvider:
    """One model on one client, tried in configured order."""

    name: str
    client: RecognitionClient
    model: str


@dataclass
class RecognitionService:
    """Builds the catalog prompt and validates the first usable reply."""

    providers: list[RecognitionProvider]

    async def recognize(
        self, image_bytes: bytes, catalog: Sequence[MenuEntry]
    ) -> RecognitionResult:
        """Recognize dishes in an image, trying each provider in turn."""
        if not image_bytes:
            raise InputError("Image data required")
        if not self.providers:
            raise UpstreamError("No recognition provider configured")

        prompt = build_prompt(catalog)
        data_url = _to_data_url(image_bytes)
        last_error: Exception | None = None
        for provider in self.providers:
            try:
                reply = await provider.client.complete(
                    model=provider.model, prompt=prompt, image_data_url=data_url
                )
                return RecognitionResult.model_validate(extract_json_object(reply))
            except Exception as exc:
                last_error = exc
                _logger.warning(
                    "Recognition via %s/%s failed: %s",
                    provider.name,
                    provider.model,
                    exc,
                )
        raise UpstreamError(f"Recognition failed: {last_error}") from last_error


def build_prompt(catalog: Sequence[MenuEntry]) -> str:
    """Build the instruction context listing catalog dishes and market prices."""
    menu = "\n".join(
        f"- {entry.name}: ~${unit_price(entry, PriceMode.MARKET):g}"
        for entry in catalog
    )
    return (
        "Context: User is eating at a buffet. "
        "Goal: Identify food, count items, estimate value.\n"
        f"DB:\n{menu}\n"
        "Instructions:\n"
        "1. Identify items.\n"
        "2. ESTIMATE COUNT (e.g., 3 slices). Default 1.\n"
        f"3. {REPLY_FORMAT}"
    )


def extract_json_object(text: str) -> dict[str, object]:
    """Return the first well-formed JSON object embedded in text."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise UpstreamError("No JSON object in recognition reply")


def decode_image(data: str) -> bytes:
    """Decode a base64 image, with or without a data URL prefix."""
    _, _, encoded = data.rpartition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except ValueError as exc:
        raise InputError("Image data is not valid base64") from exc


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
