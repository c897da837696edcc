from datetime import datetime, timezone
from typing import Dict, Union

from pydantic import BaseModel

DATA_URL_PREFIX = "data:image/png;base64,"

# base64 encodes 3 bytes into 4 characters
BASE64_EXPANSION = 0.75


class Coordinates(BaseModel):
    lat: float
    lng: float


class CameraParams(BaseModel):
    """Map camera at the moment of capture (degrees / zoom level)."""
    pitch: float = 0.0
    bearing: float = 0.0
    zoom: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"pitch": self.pitch, "bearing": self.bearing, "zoom": self.zoom}


def estimate_size_mb(image_data: str) -> float:
    """Approximate decoded size in MB of a base64 payload."""
    return len(image_data) * BASE64_EXPANSION / (1024 * 1024)


def format_mb(size_mb: Union[int, float]) -> str:
    return f"{size_mb:.2f} MB"


def to_data_url(image_data: str) -> str:
    return f"{DATA_URL_PREFIX}{image_data}"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
