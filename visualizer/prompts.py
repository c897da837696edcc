from .models import GenerationRequest

# Instructions sent with every captured map view
VISUALIZATION_PROMPT = """
Transform this map view into a PHOTOREALISTIC 3D architectural visualization.

SCENE CONTEXT:
- GPS: {lat}, {lng}
- Camera: Pitch {pitch}°, Bearing {bearing}°, Zoom {zoom}

REQUIREMENTS:
ARCHITECTURE:
- Detailed modern buildings with realistic materials (glass, concrete, steel)
- Windows, balconies, rooftop details
- Proper building heights and proportions
- Natural lighting with accurate shadows

INFRASTRUCTURE:
- Asphalt roads with lane markings
- Sidewalks, crosswalks
- Street lights, traffic signs
- Proper road layout matching the map

URBAN LIFE:
- Cars, motorcycles on roads
- Pedestrians on sidewalks
- Parking areas with vehicles

VEGETATION:
- Street trees with detailed foliage
- Parks and green spaces
- Urban landscaping

LIGHTING & ATMOSPHERE:
- Natural daylight
- Soft shadows
- Reflections on glass
- Atmospheric haze

TECHNICAL:
- Maintain exact camera angle (pitch {pitch}°, bearing {bearing}°)
- Preserve geographical layout
- 4K quality, photorealistic rendering
- Professional architectural visualization standard

OUTPUT: Describe the scene as a single photorealistic image that looks like a real photograph.
""".strip()


def _fmt(value: float) -> str:
    return f"{value:g}"


def build_visualization_prompt(request: GenerationRequest) -> str:
    """Embed the capture's coordinates and camera into the visualization prompt."""
    return VISUALIZATION_PROMPT.format(
        lat=request.location.lat,
        lng=request.location.lng,
        pitch=_fmt(request.pitch),
        bearing=_fmt(request.bearing),
        zoom=_fmt(request.zoom),
    )
