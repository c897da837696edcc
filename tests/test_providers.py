import asyncio
import json

import httpx
import pytest

from visualizer.errors import BackendError
from visualizer.providers import GeminiProvider, OllamaProvider

from .helpers import PNG_B64


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeGeminiModel:
    def __init__(self, text="A dense downtown grid", error=None):
        self.text = text
        self.error = error
        self.contents = []

    async def generate_content_async(self, contents):
        self.contents.append(contents)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def gemini_with(model):
    provider = GeminiProvider(None, "gemini-test")
    provider.model = model
    return provider


def test_gemini_without_key_is_not_configured():
    provider = GeminiProvider(None)
    assert not provider.configured
    with pytest.raises(BackendError, match="not configured"):
        asyncio.run(provider.describe_image(PNG_B64, "prompt"))


def test_gemini_sends_image_then_prompt():
    model = FakeGeminiModel()
    result = asyncio.run(gemini_with(model).describe_image(PNG_B64, "describe"))

    image_part, prompt = model.contents[0]
    assert image_part["mime_type"] == "image/png"
    assert image_part["data"].startswith(b"\x89PNG")
    assert prompt == "describe"
    assert result.text == "A dense downtown grid"
    assert result.model == "gemini-test"
    assert result.provider == "gemini"


def test_gemini_sdk_error_becomes_backend_error():
    model = FakeGeminiModel(error=RuntimeError("400 Invalid argument"))
    with pytest.raises(BackendError, match="400 Invalid argument"):
        asyncio.run(gemini_with(model).describe_image(PNG_B64, "describe"))


def test_gemini_rejects_bad_base64():
    model = FakeGeminiModel()
    with pytest.raises(BackendError, match="not valid base64"):
        asyncio.run(gemini_with(model).describe_image("not base64!!", "describe"))
    assert model.contents == []


def test_gemini_generate_text():
    model = FakeGeminiModel(text="Hello")
    assert asyncio.run(gemini_with(model).generate_text("Say hello in one word")) == "Hello"


def ollama_with(handler):
    return OllamaProvider("http://ollama.test/", model="llava", api_key="secret",
                          transport=httpx.MockTransport(handler))


def test_ollama_posts_image_payload():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "Rooftops and a river"})

    result = asyncio.run(ollama_with(handler).describe_image(PNG_B64, "describe"))

    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"] == {"model": "llava", "prompt": "describe", "images": [PNG_B64], "stream": False}
    assert result.text == "Rooftops and a river"
    assert result.provider == "ollama"


def test_ollama_http_error_carries_status():
    provider = ollama_with(lambda request: httpx.Response(503, text="overloaded"))
    with pytest.raises(BackendError) as exc_info:
        asyncio.run(provider.describe_image(PNG_B64, "describe"))
    assert exc_info.value.status == 503
    assert exc_info.value.details == "overloaded"


def test_ollama_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendError, match="connection refused"):
        asyncio.run(ollama_with(handler).describe_image(PNG_B64, "describe"))


def test_ollama_without_host():
    provider = OllamaProvider(None)
    assert not provider.configured
    with pytest.raises(BackendError, match="not configured"):
        asyncio.run(provider.generate_text("hi"))


@pytest.mark.parametrize("payload", [["not", "an", "object"], {"response": 42}, "plain"])
def test_ollama_unexpected_shape_becomes_backend_error(payload):
    provider = ollama_with(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(BackendError, match="unexpected response") as exc_info:
        asyncio.run(provider.describe_image(PNG_B64, "describe"))
    assert exc_info.value.status == 200


def test_ollama_missing_response_field_is_empty_text():
    provider = ollama_with(lambda request: httpx.Response(200, json={"done": True}))
    assert asyncio.run(provider.describe_image(PNG_B64, "describe")).text == ""
