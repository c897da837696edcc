"""
Request validation and size gating for captured map views.

Checks run in a fixed order (image, location, camera) and the first failure
is reported, so the client always gets the most fundamental problem first.
"""
import logging
import math
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .errors import PayloadTooLarge, ValidationError
from .models import GenerationRequest
from .utils import estimate_size_mb, format_mb

logger = logging.getLogger(__name__)

CAMERA_FIELDS = ("pitch", "bearing", "zoom")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


def validate_request(body: Any) -> GenerationRequest:
    """Turn a decoded JSON body into a GenerationRequest or raise ValidationError."""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    image_data = body.get("imageData")
    if not isinstance(image_data, str) or not image_data:
        logger.error(f"Validation failed: no image data (keys: {list(body.keys())})")
        raise ValidationError("No image data provided", received=list(body.keys()))

    location = body.get("location")
    if (not isinstance(location, dict)
            or not _is_number(location.get("lat"))
            or not _is_number(location.get("lng"))):
        logger.error(f"Validation failed: invalid location {location!r}")
        raise ValidationError("Invalid location data", received=location)

    camera = {name: body.get(name) for name in CAMERA_FIELDS}
    if any(isinstance(value, (int, float)) and not _is_number(value) for value in camera.values()):
        logger.error(f"Validation failed: invalid camera {camera!r}")
        raise ValidationError("Invalid camera data", received=camera)

    try:
        request = GenerationRequest.model_validate(body)
    except PydanticValidationError as e:
        fields = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
        if fields & set(CAMERA_FIELDS):
            raise ValidationError(
                "Invalid camera data",
                received={name: body.get(name) for name in CAMERA_FIELDS},
            )
        raise ValidationError(f"Invalid request data: {', '.join(sorted(fields))}")

    logger.info("Validation passed")
    return request


def check_size(image_data: str, limit_mb: float) -> float:
    """
    Reject payloads whose decoded size estimate exceeds ``limit_mb``.

    Returns the estimated size in MB. The comparison is done on the raw
    float, never on the rounded display value.
    """
    size_mb = estimate_size_mb(image_data)
    logger.info(f"Image size: ~{format_mb(size_mb)}")
    if size_mb > limit_mb:
        logger.warning(f"Image too large ({format_mb(size_mb)} > {limit_mb} MB)")
        raise PayloadTooLarge(size_mb, limit_mb)
    return size_mb
