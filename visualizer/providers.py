"""
Clients for the external vision services a backend can delegate to.

Each provider turns a base64 PNG plus a prompt into a BackendResult and
reports every failure as BackendError, so callers only ever handle one
exception family.
"""
import base64
import binascii
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import google.generativeai as genai
import httpx

from .errors import BackendError
from .models import BackendResult

logger = logging.getLogger(__name__)


class VisionProvider(ABC):
    name = "provider"

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether the provider has what it needs to make calls."""

    @abstractmethod
    async def describe_image(self, image_data: str, prompt: str) -> BackendResult:
        """Analyze a base64 PNG and return the text result. Raises BackendError on failure."""

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Text-only round trip, used by the connectivity smoke test."""

    def describe(self) -> Dict[str, Any]:
        return {"configured": self.configured}


def _error_details(error: Exception) -> Optional[Any]:
    details = getattr(error, "details", None)
    if callable(details):
        details = None
    if details is None:
        return None
    if isinstance(details, (list, tuple)):
        return [str(d) for d in details]
    return str(details)


def _error_status(error: Exception) -> Optional[int]:
    code = getattr(error, "code", None)
    if isinstance(code, int):
        return code
    return None


class GeminiProvider(VisionProvider):
    """Google Gemini via the google-generativeai SDK."""

    name = "gemini"

    def __init__(self, api_key: Optional[str], model_name: str = "gemini-1.5-flash"):
        self.api_key = api_key
        self.model_name = model_name
        self.model = None
        if api_key:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name)
            logger.info(f"Initialized Gemini provider with model {model_name}")
        else:
            logger.warning("Gemini API key not found. Gemini provider is disabled.")

    @property
    def configured(self) -> bool:
        return self.model is not None

    def describe(self) -> Dict[str, Any]:
        return {"configured": self.configured, "model": self.model_name}

    def _require_model(self):
        if self.model is None:
            raise BackendError("Gemini API key is not configured")
        return self.model

    async def describe_image(self, image_data: str, prompt: str) -> BackendResult:
        model = self._require_model()
        try:
            image_bytes = base64.b64decode(image_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise BackendError(f"Image data is not valid base64: {e}")

        image_part = {"mime_type": "image/png", "data": image_bytes}
        try:
            response = await model.generate_content_async([image_part, prompt])
        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            raise BackendError(str(e), status=_error_status(e), details=_error_details(e))

        if not response:
            raise BackendError("No response from Gemini API")
        try:
            text = response.text
        except ValueError as e:
            # raised when the candidate was blocked or carries no text part
            raise BackendError(f"Gemini returned no text: {e}")

        logger.info(f"Gemini API success ({len(text)} chars)")
        return BackendResult(text=text, model=self.model_name, provider=self.name)

    async def generate_text(self, prompt: str) -> str:
        model = self._require_model()
        try:
            response = await model.generate_content_async(prompt)
            return response.text
        except Exception as e:
            raise BackendError(str(e), status=_error_status(e), details=_error_details(e))


class OllamaProvider(VisionProvider):
    """Any Ollama-compatible server hosting a multimodal model."""

    name = "ollama"

    def __init__(
        self,
        host: Optional[str],
        model: str = "llava",
        api_key: Optional[str] = None,
        request_timeout: Optional[float] = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host.rstrip("/") if host else None
        self.model = model
        self.api_key = api_key
        self.request_timeout = request_timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def describe(self) -> Dict[str, Any]:
        return {"configured": self.configured, "model": self.model, "host": self.host}

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, payload: Dict[str, Any]) -> str:
        if not self.host:
            raise BackendError("Ollama host is not configured")

        url = f"{self.host}/api/generate"
        try:
            async with httpx.AsyncClient(timeout=self.request_timeout, transport=self.transport) as client:
                resp = await client.post(url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Error calling Ollama at {url}: {e}")
            raise BackendError(f"Ollama request failed: {e}")

        if resp.status_code != 200:
            logger.error(f"HTTP {resp.status_code} from {url}: {resp.text[:300]}")
            raise BackendError(
                f"Ollama returned HTTP {resp.status_code}",
                status=resp.status_code,
                details=resp.text[:300] or None,
            )
        try:
            body = resp.json()
        except ValueError:
            raise BackendError("Ollama returned a non-JSON response", status=resp.status_code)
        text = (body.get("response") or "") if isinstance(body, dict) else None
        if not isinstance(text, str):
            logger.error(f"Unexpected response shape from {url}: {resp.text[:300]}")
            raise BackendError("Ollama returned an unexpected response", status=resp.status_code)
        return text

    async def describe_image(self, image_data: str, prompt: str) -> BackendResult:
        text = await self._post({
            "model": self.model,
            "prompt": prompt,
            "images": [image_data],
            "stream": False,
        })
        logger.info(f"Ollama success ({len(text)} chars)")
        return BackendResult(text=text, model=self.model, provider=self.name)

    async def generate_text(self, prompt: str) -> str:
        return await self._post({"model": self.model, "prompt": prompt, "stream": False})
