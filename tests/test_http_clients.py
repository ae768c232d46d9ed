"""Tests for HTTP-based adapters."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from recycling_assistant.adapters.clarifai_client import ClarifaiVisionClient
from recycling_assistant.adapters.clarifai_llm_client import ClarifaiLLMClient
from recycling_assistant.adapters.google_vision_client import GoogleVisionClient
from recycling_assistant.adapters.openai_interpreter_client import (
    OpenAIInterpreterClient,
)
from recycling_assistant.adapters.openai_vision_client import OpenAIVisionClient
from recycling_assistant.domain.errors import (
    InterpreterHttpError,
    InterpreterParseError,
    ProviderQuotaExceeded,
    ProviderTransient,
    ProviderUnauthorized,
    ProviderUnconfigured,
)
from recycling_assistant.domain.vision import VisionLabel
from tests.conftest import PNG_BYTES


def _mock_client(handler) -> httpx.AsyncClient:  # type: ignore[no-untyped-def]
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


_GOOGLE_PAYLOAD = {
    "responses": [
        {
            "labelAnnotations": [
                {"description": "Bottle", "score": 0.95},
                {"description": "Plastic", "score": 0.85},
                {"description": "Blurry", "score": 0.3},
            ],
            "localizedObjectAnnotations": [{"name": "Bottle", "score": 0.9}],
            "textAnnotations": [{"description": "DASANI PETE 1 water"}],
            "webDetection": {"webEntities": [{"description": "Dasani", "score": 0.8}]},
        }
    ]
}


def test_google_vision_client_parses_annotations() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.url.params.get("key")
        seen["features"] = [
            feature["type"]
            for feature in json.loads(request.content)["requests"][0]["features"]
        ]
        return httpx.Response(200, json=_GOOGLE_PAYLOAD)

    client = GoogleVisionClient(api_key="key", http_client=_mock_client(handler))

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert seen["key"] == "key"
    assert "OBJECT_LOCALIZATION" in seen["features"]
    assert bundle.labels == [
        VisionLabel(name="Bottle", confidence=0.95),
        VisionLabel(name="Plastic", confidence=0.85),
    ]
    assert bundle.objects == [VisionLabel(name="Bottle", confidence=0.9)]
    assert bundle.ocr_texts == ["DASANI", "PETE", "water"]
    assert bundle.web_entities[0].name == "Dasani"


def test_google_vision_client_requires_key() -> None:
    client = GoogleVisionClient(
        api_key=None, http_client=_mock_client(lambda request: httpx.Response(200))
    )

    with pytest.raises(ProviderUnconfigured):
        asyncio.run(client.analyze(PNG_BYTES))


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [
        (403, ProviderUnauthorized),
        (429, ProviderQuotaExceeded),
        (503, ProviderTransient),
    ],
)
def test_google_vision_client_maps_http_errors(status_code, error_type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text="nope")

    client = GoogleVisionClient(api_key="key", http_client=_mock_client(handler))

    with pytest.raises(error_type):
        asyncio.run(client.analyze(PNG_BYTES))


def test_google_vision_client_maps_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    client = GoogleVisionClient(api_key="key", http_client=_mock_client(handler))

    with pytest.raises(ProviderTransient):
        asyncio.run(client.analyze(PNG_BYTES))


def test_clarifai_client_parses_concepts() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Key pat"
        return httpx.Response(
            200,
            json={
                "outputs": [
                    {
                        "data": {
                            "concepts": [
                                {"name": "can", "value": 0.7},
                                {"name": "aluminum", "value": 0.9},
                            ]
                        }
                    }
                ]
            },
        )

    client = ClarifaiVisionClient(pat="pat", http_client=_mock_client(handler))

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert [label.name for label in bundle.labels] == ["aluminum", "can"]
    assert bundle.objects == []


def test_clarifai_client_without_outputs_returns_empty_bundle() -> None:
    client = ClarifaiVisionClient(
        pat="pat",
        http_client=_mock_client(lambda request: httpx.Response(200, json={})),
    )

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert bundle.is_empty


def test_clarifai_llm_client_returns_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        prompt = json.loads(request.content)["inputs"][0]["data"]["text"]["raw"]
        assert prompt == "classify"
        return httpx.Response(
            200, json={"outputs": [{"data": {"text": {"raw": '{"ok": true}'}}}]}
        )

    client = ClarifaiLLMClient(pat="pat", http_client=_mock_client(handler))

    assert asyncio.run(client.complete("classify")) == '{"ok": true}'


def test_clarifai_llm_client_errors() -> None:
    failing = ClarifaiLLMClient(
        pat="pat", http_client=_mock_client(lambda request: httpx.Response(500))
    )
    empty = ClarifaiLLMClient(
        pat="pat",
        http_client=_mock_client(lambda request: httpx.Response(200, json={})),
    )

    with pytest.raises(InterpreterHttpError):
        asyncio.run(failing.complete("classify"))
    with pytest.raises(InterpreterParseError):
        asyncio.run(empty.complete("classify"))


class _FakeResponses:
    def __init__(self, output: dict[str, object] | Exception) -> None:
        self.output = output
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        if isinstance(self.output, Exception):
            raise self.output
        return SimpleNamespace(output_text=json.dumps(self.output))


class _FakeOpenAI:
    def __init__(self, output: dict[str, object] | Exception) -> None:
        self.responses = _FakeResponses(output)


def _openai_error(error_type: type[openai.APIStatusError], status_code: int):  # type: ignore[no-untyped-def]
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    return error_type(
        "failed", response=httpx.Response(status_code, request=request), body=None
    )


def test_openai_vision_client_parses_output() -> None:
    fake = _FakeOpenAI(
        {
            "main_objects": [{"name": "bottle", "confidence": 0.9}],
            "materials": [{"name": "plastic", "confidence": 0.8}],
            "text_found": ["PETE 1"],
            "brands": ["Dasani"],
            "recycling_relevant": True,
            "description": "A plastic bottle",
        }
    )
    client = OpenAIVisionClient(client=fake)  # type: ignore[arg-type]

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert [label.name for label in bundle.labels] == [
        "bottle",
        "recyclable material",
        "plastic",
    ]
    assert bundle.objects == [VisionLabel(name="bottle", confidence=0.9)]
    assert bundle.ocr_texts == ["PETE 1"]
    assert bundle.web_entities == [VisionLabel(name="Dasani", confidence=0.8)]
    assert fake.responses.last_payload["text"]["format"]["strict"] is True


def test_openai_vision_client_falls_back_to_description_keywords() -> None:
    fake = _FakeOpenAI(
        {
            "main_objects": [],
            "materials": [],
            "text_found": [],
            "brands": [],
            "recycling_relevant": False,
            "description": "A half eaten apple",
        }
    )
    client = OpenAIVisionClient(client=fake)  # type: ignore[arg-type]

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert [label.name for label in bundle.labels] == ["apple"]
    assert [obj.name for obj in bundle.objects] == ["apple"]


def test_openai_vision_client_maps_api_errors() -> None:
    limited = OpenAIVisionClient(
        client=_FakeOpenAI(_openai_error(openai.RateLimitError, 429))  # type: ignore[arg-type]
    )
    denied = OpenAIVisionClient(
        client=_FakeOpenAI(_openai_error(openai.AuthenticationError, 401))  # type: ignore[arg-type]
    )

    with pytest.raises(ProviderQuotaExceeded):
        asyncio.run(limited.analyze(PNG_BYTES))
    with pytest.raises(ProviderUnauthorized):
        asyncio.run(denied.analyze(PNG_BYTES))


def test_openai_vision_client_keeps_zero_confidence() -> None:
    fake = _FakeOpenAI(
        {
            "main_objects": [{"name": "blob", "confidence": 0.0}],
            "materials": [{"name": "plastic", "confidence": 0.0}],
            "text_found": [],
            "brands": [],
            "recycling_relevant": False,
            "description": "",
        }
    )
    client = OpenAIVisionClient(client=fake)  # type: ignore[arg-type]

    bundle = asyncio.run(client.analyze(PNG_BYTES))

    assert [(label.name, label.confidence) for label in bundle.labels] == [
        ("blob", 0.0),
        ("plastic", 0.0),
    ]
    assert bundle.objects == [VisionLabel(name="blob", confidence=0.0)]


def test_openai_vision_client_unconfigured_without_key() -> None:
    client = OpenAIVisionClient.create(api_key=None, model="gpt-4o-mini")

    with pytest.raises(ProviderUnconfigured):
        asyncio.run(client.analyze(PNG_BYTES))


class _FakeCompletions:
    def __init__(self, content: str | None) -> None:
        self.content = content
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_openai_interpreter_client_uses_json_mode() -> None:
    completions = _FakeCompletions('{"item_name": "Can"}')
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client = OpenAIInterpreterClient(client=fake)  # type: ignore[arg-type]

    result = asyncio.run(client.complete("prompt"))

    assert result == '{"item_name": "Can"}'
    assert completions.last_payload["response_format"] == {"type": "json_object"}
    assert completions.last_payload["messages"][1]["content"] == "prompt"


def test_openai_interpreter_client_rejects_empty_content() -> None:
    fake = SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(None)))
    client = OpenAIInterpreterClient(client=fake)  # type: ignore[arg-type]

    with pytest.raises(InterpreterParseError):
        asyncio.run(client.complete("prompt"))
