import builtins
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

ENV = os.getenv("ENV", os.getenv("PYTHON_ENV", "development"))

# demo/production: console output off (this also silences the pipeline's log())
if ENV in ("demo", "production"):
    def _quiet_print(*args, **kwargs):
        pass
    builtins.print = _quiet_print
    sys.stderr.write(f"[CONFIG] {ENV}: console output disabled\n")


def _find_env_file(env: str) -> Optional[str]:
    """.env.<env> wins over .env"""
    for candidate in (f".env.{env}", ".env"):
        if os.path.exists(candidate):
            return candidate
    return None


ENV_FILE = _find_env_file(ENV)
if ENV_FILE:
    load_dotenv(ENV_FILE)
    print(f"[CONFIG] ENV={ENV}, loaded {ENV_FILE}")
else:
    print(f"[CONFIG] ENV={ENV}, no .env file; process environment only")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[CONFIG] Ignoring invalid {name}={raw!r}; using {default}")
        return default


# Settings
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3001")
CORS_ALLOW_ALL = os.getenv("CORS_ALLOW_ALL", "false").lower() == "true"

DEFAULT_TARGET_HEIGHT = _env_float("MAP_TARGET_HEIGHT", 1000.0)
DEFAULT_THEME = os.getenv("MAP_THEME", "night")

MAP_UPLOAD_LIMITS = {
    "max_file_size_bytes": int(_env_float("MAP_MAX_UPLOAD_MB", 100.0) * 1024 * 1024),
    "read_chunk_size": 1024 * 1024,
    "min_target_height": 10.0,
    "max_target_height": 20000.0,
}

APP_CONFIG = {
    "title": "osm-svg Map Rendering API",
    "description": """
**osm-svg**: OpenStreetMap / GeoJSON to layered SVG map posters

### Line stitching
- Duplicate coastline and park fragments removed
- Fragments joined end-to-start into rings

### Layered rendering
- Explicit z-order of layers
- Buildings and paths inside parks masked with clip paths
- Themes: night, puke, gray
    """,
    "version": "1.0.0",
    "license_info": {
        "name": "MIT",
    }
}

TAGS_METADATA = [
    {
        "name": "Map Rendering",
        "description": "Map document to layered SVG",
        "externalDocs": {
            "description": "OSM XML format",
            "url": "https://wiki.openstreetmap.org/wiki/OSM_XML",
        },
    },
    {
        "name": "System",
        "description": "Health checks and configuration",
    },
]


def cors_origins() -> list:
    """Allowed origins for the current environment."""
    origins = []
    if CORS_ALLOW_ALL or FRONTEND_URL == "*":
        # Explicit localhost list; "*" with credentials is rejected by browsers
        origins.extend([
            "http://localhost:8001",
            "http://127.0.0.1:8001",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ])
    else:
        if FRONTEND_URL:
            origins.append(FRONTEND_URL)
        if ENV == "demo":
            origins.extend([
                "http://localhost:8080",
                "http://127.0.0.1:8080",
            ])
    return origins


def setup_cors(app: FastAPI) -> None:
    """Attach CORS middleware."""
    origins = cors_origins()
    print(f"[CORS] env={ENV} frontend={FRONTEND_URL} allow_all={CORS_ALLOW_ALL}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    print(f"[CORS] {len(origins)} allowed origins")
    for i, origin in enumerate(origins, 1):
        print(f"[CORS]   {i}. {origin}")


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(**APP_CONFIG, openapi_tags=TAGS_METADATA)
    setup_cors(app)
    return app
