import logging

from fastapi import APIRouter

from models.response_models import HealthCheckResponse
from services.osmsvg.render.themes import THEMES
from services.osmsvg.transforms.projection import make_projector

logger = logging.getLogger(__name__)

router = APIRouter()


def _projection_available() -> bool:
    try:
        make_projector()
    except Exception as e:
        logger.warning("[HEALTH] projection unavailable: %s", e)
        return False
    return True


# --- Health check ---
@router.get(
    "/api/health",
    summary="Health Check",
    tags=["System"],
    status_code=200,
    response_model=HealthCheckResponse,
    responses={
        200: {
            "description": "System health status and available themes",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "projection_available": True,
                        "supported_formats": ["OSM", "GeoJSON"],
                        "themes": ["night", "puke", "gray"],
                    }
                }
            }
        }
    }
)
async def api_health_check():
    """
    System health check.

    **Status**:
    - `healthy`: rendering available
    - `degraded`: the pyproj transformation cannot be built (missing PROJ data)
    """
    available = _projection_available()
    return HealthCheckResponse(
        status="healthy" if available else "degraded",
        projection_available=available,
        supported_formats=["OSM", "GeoJSON"],
        themes=list(THEMES),
    )


# --- Debug: CORS configuration ---
@router.get(
    "/api/debug/cors-config",
    summary="CORS Configuration Debug",
    tags=["System"],
    include_in_schema=False,
)
async def debug_cors_config():
    """CORS configuration as seen by the running process."""
    import os
    from config import CORS_ALLOW_ALL, ENV, FRONTEND_URL, cors_origins

    return {
        "cors_configuration": {
            "env": ENV,
            "frontend_url": FRONTEND_URL,
            "cors_allow_all": CORS_ALLOW_ALL,
            "allowed_origins": cors_origins(),
            "allows_credentials": True,
        },
        "environment_variables": {
            "FRONTEND_URL": os.getenv("FRONTEND_URL"),
            "CORS_ALLOW_ALL": os.getenv("CORS_ALLOW_ALL"),
        },
    }
