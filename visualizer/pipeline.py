"""
Request handling for a captured map view.

Received -> Validated -> SizeChecked -> Delegated -> Normalized

Validation and size failures raise and end the request with a 400. Backend
failures are caught here and turned into a ``success: false`` envelope that
still carries the original image.
"""
import logging
from typing import Any, Optional

from .backends import GenerationBackend
from .errors import BackendError
from .models import BackendResult, GenerationRequest, GenerationResponse, ResponseMetadata
from .prompts import build_visualization_prompt
from .utils import format_mb, to_data_url, utc_timestamp
from .validation import check_size, validate_request

logger = logging.getLogger(__name__)


def _metadata(request: GenerationRequest, backend_name: str, size_mb: float,
              result: Optional[BackendResult] = None) -> ResponseMetadata:
    extra = dict(result.extra) if result else {}
    return ResponseMetadata(
        location=request.location,
        camera=request.camera,
        timestamp=utc_timestamp(),
        imageSize=format_mb(size_mb),
        backend=backend_name,
        model=result.model if result else None,
        provider=result.provider if result else None,
        note=extra.pop("note", None),
        imageUrl=result.image_url if result else None,
        **extra,
    )


def fallback_description(request: GenerationRequest) -> str:
    return f"Visualization generated for {request.location.lat}, {request.location.lng}"


def build_success_response(request: GenerationRequest, result: BackendResult,
                           backend_name: str, size_mb: float) -> GenerationResponse:
    description = (result.text or "").strip() or fallback_description(request)
    return GenerationResponse(
        success=True,
        image=to_data_url(request.image_data),
        description=description,
        metadata=_metadata(request, backend_name, size_mb, result),
    )


def build_failure_response(request: GenerationRequest, error: BackendError,
                           backend_name: str, size_mb: float) -> GenerationResponse:
    reason = error.message or type(error).__name__
    return GenerationResponse(
        success=False,
        image=to_data_url(request.image_data),
        description=f"⚠️ AI generation failed: {reason}\n\nReturning original map image.",
        metadata=_metadata(request, backend_name, size_mb),
        error=error.to_dict(),
    )


async def process_generation(body: Any, backend: GenerationBackend,
                             max_image_mb: float) -> GenerationResponse:
    """Run one captured view through validation, size gating and the backend."""
    request = validate_request(body)
    size_mb = check_size(request.image_data, max_image_mb)

    logger.info(f"Location: {request.location.lat}, {request.location.lng}")
    logger.info(f"Camera: Pitch {request.pitch}°, Bearing {request.bearing}°, Zoom {request.zoom}")

    prompt = build_visualization_prompt(request)
    try:
        result = await backend.generate(request, prompt)
    except BackendError as e:
        logger.warning(f"Backend {backend.name} failed: {e.message}")
        return build_failure_response(request, e, backend.name, size_mb)

    logger.info(f"Backend {backend.name} succeeded")
    return build_success_response(request, result, backend.name, size_mb)
