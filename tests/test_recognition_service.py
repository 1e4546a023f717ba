"""Tests for plate recognition and its fallbacks."""

import asyncio
import base64

import pytest

from buffet_tracker.errors import InputError, UpstreamError
from buffet_tracker.services.recognition import (
    RecognitionProvider,
    RecognitionService,
    build_prompt,
    decode_image,
    extract_json_object,
)
from tests.conftest import SAMPLE_MENU, FailingRecognitionClient, FakeRecognitionClient


def test_recognize_parses_reply_wrapped_in_noise() -> None:
    client = FakeRecognitionClient()
    service = RecognitionService(
        providers=[RecognitionProvider(name="openai", client=client, model="gpt")]
    )

    result = asyncio.run(service.recognize(b"\x89PNG\r\n\x1a\nrest", SAMPLE_MENU))

    assert result.comment == "Nice plate"
    assert [item.name for item in result.items] == ["Salmon Sashimi", "Mystery Roll"]
    assert result.items[1].count is None
    assert client.calls[0]["model"] == "gpt"
    assert client.calls[0]["image_data_url"].startswith("data:image/png;base64,")


def test_recognize_falls_back_to_next_provider() -> None:
    failing = FailingRecognitionClient()
    malformed = FakeRecognitionClient(reply="I could not find any food.")
    working = FakeRecognitionClient()
    service = RecognitionService(
        providers=[
            RecognitionProvider(name="openai", client=failing, model="primary"),
            RecognitionProvider(name="openai", client=malformed, model="secondary"),
            RecognitionProvider(name="gemini", client=working, model="flash"),
        ]
    )

    result = asyncio.run(service.recognize(b"photo", SAMPLE_MENU))

    assert failing.calls == 1
    assert len(malformed.calls) == 1
    assert len(working.calls) == 1
    assert len(result.items) == 2


def test_recognize_rejects_invalid_item_values() -> None:
    invalid = FakeRecognitionClient(
        reply='{"items": [{"name": "Salmon", "price": -5}], "comment": ""}'
    )
    service = RecognitionService(
        providers=[RecognitionProvider(name="openai", client=invalid, model="m")]
    )

    with pytest.raises(UpstreamError):
        asyncio.run(service.recognize(b"photo", SAMPLE_MENU))


def test_recognize_surfaces_last_failure() -> None:
    service = RecognitionService(
        providers=[
            RecognitionProvider(
                name="openai", client=FailingRecognitionClient("first"), model="a"
            ),
            RecognitionProvider(
                name="gemini", client=FailingRecognitionClient("second"), model="b"
            ),
        ]
    )

    with pytest.raises(UpstreamError, match="second"):
        asyncio.run(service.recognize(b"photo", SAMPLE_MENU))


def test_recognize_requires_image_and_provider() -> None:
    service = RecognitionService(
        providers=[
            RecognitionProvider(
                name="openai", client=FakeRecognitionClient(), model="m"
            )
        ]
    )

    with pytest.raises(InputError):
        asyncio.run(service.recognize(b"", SAMPLE_MENU))
    with pytest.raises(UpstreamError):
        asyncio.run(RecognitionService(providers=[]).recognize(b"x", SAMPLE_MENU))


def test_build_prompt_lists_market_prices() -> None:
    prompt = build_prompt(SAMPLE_MENU)

    assert "- Salmon: ~$70" in prompt
    assert "- Green Tea Pudding: ~$60" in prompt
    assert "Return JSON" in prompt


def test_extract_json_object_skips_invalid_candidates() -> None:
    text = 'Note {not json} then {"items": [{"name": "a"}], "comment": "{x}"} end'

    assert extract_json_object(text) == {"items": [{"name": "a"}], "comment": "{x}"}


def test_extract_json_object_without_object() -> None:
    with pytest.raises(UpstreamError):
        extract_json_object("[1, 2, 3]")


def test_decode_image_accepts_data_url_and_rejects_garbage() -> None:
    encoded = base64.b64encode(b"photo").decode()

    assert decode_image(encoded) == b"photo"
    assert decode_image(f"data:image/jpeg;base64,{encoded}") == b"photo"
    with pytest.raises(InputError):
        decode_image("not base64!")
