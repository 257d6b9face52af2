from pydantic import BaseModel, Field
from typing import List, Dict


class HealthCheckResponse(BaseModel):
    """Health check response"""

    status: str = Field(
        description="Status (healthy/degraded)",
        example="healthy"
    )
    projection_available: bool = Field(
        description="pyproj transformer for EPSG:4326 -> EPSG:3395 could be created",
        example=True
    )
    supported_formats: List[str] = Field(
        description="Accepted input formats",
        example=["OSM", "GeoJSON"]
    )
    themes: List[str] = Field(
        description="Available theme names",
        example=["night", "puke", "gray"]
    )


class ThemeInfo(BaseModel):
    """One theme"""

    name: str = Field(
        description="Theme name",
        example="night"
    )
    background: str = Field(
        description="Canvas background color",
        example="#000020"
    )
    classes: Dict[str, str] = Field(
        description="CSS class per layer",
        example={"road": "road", "transit": "subway"}
    )


class ThemeListResponse(BaseModel):
    """Theme list response"""

    default_theme: str = Field(
        description="Theme used when none is requested",
        example="night"
    )
    default_layer_order: List[str] = Field(
        description="Layer order used when none is requested, bottom first",
        example=["coastline", "park", "road", "park-path", "transit", "building", "park-building"]
    )
    themes: List[ThemeInfo] = Field(
        description="Available themes"
    )
