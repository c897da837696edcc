"""
Pydantic models for the /api/generate exchange.

Field names on the wire follow the browser client (camelCase); the Python
attributes are snake_case through aliases.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .utils import CameraParams, Coordinates


class GenerationRequest(BaseModel):
    """Captured map view plus the camera it was rendered with."""
    model_config = ConfigDict(populate_by_name=True)

    image_data: str = Field(..., alias="imageData", min_length=1,
                            description="Base64 PNG without the data-URL prefix")
    pitch: float = Field(0.0, allow_inf_nan=False, description="Camera pitch in degrees (0-85)")
    bearing: float = Field(0.0, allow_inf_nan=False, description="Camera bearing in degrees (0-360)")
    zoom: float = Field(0.0, ge=0, allow_inf_nan=False, description="Map zoom level")
    location: Coordinates
    provider: Optional[str] = Field(None, description="Provider name for the multi-provider backend")

    @property
    def camera(self) -> CameraParams:
        return CameraParams(pitch=self.pitch, bearing=self.bearing, zoom=self.zoom)


class BackendResult(BaseModel):
    """What a generation backend hands back before normalization."""
    text: str = ""
    image_url: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    location: Coordinates
    camera: CameraParams
    timestamp: str
    image_size: str = Field(..., alias="imageSize")
    backend: str
    model: Optional[str] = None
    provider: Optional[str] = None
    note: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")


class GenerationResponse(BaseModel):
    success: bool
    image: str
    description: str
    metadata: ResponseMetadata
    error: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
