from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


class MapRenderRequest(BaseModel):
    """Map rendering request parameters"""
    theme: str = "night"  # night / puke / gray
    target_height: float = Field(default=1000.0, gt=0)  # canvas height; width follows the aspect ratio
    layer_order: Optional[List[str]] = None  # bottom first (None = default order)
    debug: bool = False  # per-phase timings

    @field_validator("theme")
    @classmethod
    def _normalize_theme(cls, value: str) -> str:
        return value.strip().lower()
