"""
Generation backends behind POST /api/generate.

A backend receives a validated request and the rendered prompt and returns a
BackendResult. The handler does not care which variant it talks to:

- EchoBackend: no external call, templated description after a fixed delay
- SingleProviderBackend: exactly one call to one provider
- MultiProviderBackend: exactly one call to a provider picked per request
"""
import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .errors import BackendTimeout, ValidationError
from .models import BackendResult, GenerationRequest
from .providers import GeminiProvider, OllamaProvider, VisionProvider

logger = logging.getLogger(__name__)

ECHO_NOTE = "No AI processing - original map returned"
ECHO_SUFFIX = (
    "\n\n⚠️ Note: This is the original map image. To get an AI-generated 3D "
    "visualization, configure the Gemini API or another AI service."
)


class GenerationBackend(ABC):
    name = "backend"

    @abstractmethod
    async def generate(self, request: GenerationRequest, prompt: str) -> BackendResult:
        """Produce a description for the captured view. Raises BackendError on failure."""

    def describe(self) -> Dict[str, Any]:
        return {"backend": self.name}


async def call_with_deadline(provider: VisionProvider, request: GenerationRequest,
                             prompt: str, timeout: Optional[float]) -> BackendResult:
    """Single provider call, bounded by ``timeout`` seconds (None = no deadline)."""
    logger.info(f"Calling {provider.name} (timeout={timeout})")
    try:
        return await asyncio.wait_for(
            provider.describe_image(request.image_data, prompt), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning(f"{provider.name} timed out after {timeout}s")
        raise BackendTimeout(timeout, provider=provider.name)


def echo_templates(request: GenerationRequest) -> List[str]:
    lat, lng = request.location.lat, request.location.lng
    perspective = "bird's eye" if request.pitch > 60 else "street-level"
    return [
        f"Captured stunning aerial view of urban landscape at {lat:.4f}°N, {lng:.4f}°E",
        f"Beautiful {perspective} perspective of the cityscape",
        f"Map view rendered with {request.bearing:g}° rotation, showing intricate urban details",
        f"High-definition capture at zoom level {request.zoom:g}, revealing architectural patterns",
        f"Photographic simulation of urban environment with {request.pitch:g}° pitch angle",
    ]


class EchoBackend(GenerationBackend):
    """
    Stand-in for a real backend: waits ``delay`` seconds to simulate latency,
    then returns one of a few templated descriptions.

    Pass a seeded ``random.Random`` to make the choice deterministic.
    """

    name = "echo"

    def __init__(self, delay: float = 1.0, rng: Optional[random.Random] = None):
        self.delay = delay
        self.rng = rng or random.Random()

    async def generate(self, request: GenerationRequest, prompt: str) -> BackendResult:
        if self.delay > 0:
            logger.info(f"Processing... (simulated {self.delay:g}s delay)")
            await asyncio.sleep(self.delay)
        description = self.rng.choice(echo_templates(request))
        return BackendResult(text=description + ECHO_SUFFIX, extra={"note": ECHO_NOTE})

    def describe(self) -> Dict[str, Any]:
        return {"backend": self.name, "delay": self.delay}


class SingleProviderBackend(GenerationBackend):
    name = "single"

    def __init__(self, provider: VisionProvider, timeout: Optional[float] = 60.0):
        self.provider = provider
        self.timeout = timeout

    async def generate(self, request: GenerationRequest, prompt: str) -> BackendResult:
        return await call_with_deadline(self.provider, request, prompt, self.timeout)

    def describe(self) -> Dict[str, Any]:
        return {"backend": self.name, "providers": {self.provider.name: self.provider.describe()}}


class MultiProviderBackend(GenerationBackend):
    """Routes each request to one registered provider; never falls through to another."""

    name = "multi"

    def __init__(self, providers: Dict[str, VisionProvider], default: str,
                 timeout: Optional[float] = 60.0):
        if not providers:
            raise ValueError("MultiProviderBackend needs at least one provider")
        if default not in providers:
            raise ValueError(f"Default provider {default!r} is not one of {sorted(providers)}")
        self.providers = providers
        self.default = default
        self.timeout = timeout

    def select(self, name: Optional[str]) -> VisionProvider:
        if name is None:
            return self.providers[self.default]
        if name not in self.providers:
            raise ValidationError(
                f"Unknown provider: {name}",
                received={"provider": name, "available": sorted(self.providers)},
            )
        return self.providers[name]

    async def generate(self, request: GenerationRequest, prompt: str) -> BackendResult:
        provider = self.select(request.provider)
        return await call_with_deadline(provider, request, prompt, self.timeout)

    def describe(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "default": self.default,
            "providers": {name: p.describe() for name, p in self.providers.items()},
        }


def build_providers(config) -> Dict[str, VisionProvider]:
    """Every provider the configuration has credentials or a host for."""
    providers: Dict[str, VisionProvider] = {}
    if config.gemini_configured:
        providers["gemini"] = GeminiProvider(config.gemini_api_key, config.gemini_model)
    if config.ollama_host:
        providers["ollama"] = OllamaProvider(
            config.ollama_host,
            model=config.ollama_model,
            api_key=config.ollama_api_key,
            request_timeout=config.backend_timeout,
        )
    return providers


def build_backend(config, providers: Optional[Dict[str, VisionProvider]] = None) -> GenerationBackend:
    """Construct the backend variant named by ``config.backend``."""
    if config.backend == "echo":
        rng = random.Random(config.echo_seed) if config.echo_seed is not None else None
        return EchoBackend(delay=config.echo_delay, rng=rng)

    if providers is None:
        providers = build_providers(config)

    if config.backend == "single":
        provider = providers.get(config.default_provider)
        if provider is None:
            # keep the endpoint answering; every call degrades to success: false
            logger.warning(f"Provider {config.default_provider!r} is not configured")
            provider = GeminiProvider(None, config.gemini_model)
        return SingleProviderBackend(provider, timeout=config.backend_timeout)

    if not providers:
        raise ValueError("BACKEND=multi needs at least one configured provider")
    default = config.default_provider if config.default_provider in providers else next(iter(providers))
    return MultiProviderBackend(providers, default=default, timeout=config.backend_timeout)
