import asyncio

import httpx

from visualizer.models import BackendResult
from visualizer.providers import VisionProvider

# 1x1 transparent PNG
PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class FakeProvider(VisionProvider):
    """In-memory provider: returns ``text`` or raises ``error``, optionally after a delay."""

    def __init__(self, name="fake", text="A sunny city block", error=None, delay=0.0):
        self.name = name
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []

    @property
    def configured(self):
        return True

    async def describe_image(self, image_data, prompt):
        self.calls.append((image_data, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return BackendResult(text=self.text, model=f"{self.name}-model", provider=self.name)

    async def generate_text(self, prompt):
        if self.error is not None:
            raise self.error
        return "Hello"


def make_payload(**overrides):
    payload = {
        "imageData": PNG_B64,
        "pitch": 60,
        "bearing": 0,
        "zoom": 15,
        "location": {"lat": 21.0278, "lng": 105.8342},
    }
    payload.update(overrides)
    return payload


def call(app, method, url, raise_app_exceptions=True, **kwargs):
    async def _run():
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return await client.request(method, url, **kwargs)
    return asyncio.run(_run())
