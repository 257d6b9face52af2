import logging
import os

from fastapi import APIRouter, BackgroundTasks, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from api.helpers import cleanup_temp_dir, parse_csv_ids, save_upload_to_tmpdir, upload_suffix
from config import DEFAULT_TARGET_HEIGHT, DEFAULT_THEME, MAP_UPLOAD_LIMITS
from models.request_models import MapRenderRequest
from models.response_models import ThemeInfo, ThemeListResponse
from services.osmsvg import render_map
from services.osmsvg.core.constants import DEFAULT_LAYER_ORDER, GEOJSON_SUFFIXES, OSM_SUFFIXES
from services.osmsvg.pipeline.orchestrator import parse_layer_names
from services.osmsvg.render.themes import THEMES

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_UPLOAD_BYTES = MAP_UPLOAD_LIMITS["max_file_size_bytes"]
READ_CHUNK_SIZE = MAP_UPLOAD_LIMITS["read_chunk_size"]


# --- OSM / GeoJSON → SVG ---
@router.post(
    "/api/map/render",
    summary="Map document → layered SVG",
    tags=["Map Rendering"],
    responses={
        200: {
            "description": "Layered SVG map",
            "content": {
                "image/svg+xml": {
                    "schema": {"type": "string"},
                    "example": "<svg xmlns=\"http://www.w3.org/2000/svg\" ...>",
                }
            },
        },
        400: {"description": "Invalid document, theme, layer name or height"},
        413: {"description": "File too large"},
        500: {"description": "Rendering failed"},
    },
)
async def render_map_endpoint(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="OSM XML (.osm/.xml) or GeoJSON (.geojson/.json)"),
    theme: str = Form(DEFAULT_THEME, description="Theme name (night/puke/gray)"),
    target_height: float = Form(DEFAULT_TARGET_HEIGHT, description="Canvas height; width follows the aspect ratio"),
    layer_order: str = Form(
        "",
        description="Comma separated layer names, bottom first (empty = default order)",
    ),
    debug: bool = Form(False, description="Log per-phase timings"),
):
    """
    Render an uploaded OSM XML or GeoJSON document to a layered SVG map.

    **Pipeline**:
    1. Ways classified by tag (roads, buildings, coastline, parks, subway)
    2. Coordinates projected to World Mercator and scaled to the canvas
    3. Coastline and open park fragments stitched into closed rings
    4. Layers written bottom to top; buildings and paths inside parks are
       clipped by the park layer

    **Response headers**:
    - `X-Feature-Count`: features after stitching
    - `X-Canvas-Width` / `X-Canvas-Height`: SVG canvas size
    """
    tmpdir = None
    success = False

    try:
        suffix = upload_suffix(file.filename, OSM_SUFFIXES + GEOJSON_SUFFIXES)

        try:
            request = MapRenderRequest(
                theme=theme,
                target_height=target_height,
                layer_order=parse_csv_ids(layer_order),
                debug=debug,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if not (MAP_UPLOAD_LIMITS["min_target_height"] <= request.target_height <= MAP_UPLOAD_LIMITS["max_target_height"]):
            raise HTTPException(
                status_code=400,
                detail=(
                    f"target_height must be between {MAP_UPLOAD_LIMITS['min_target_height']:g} "
                    f"and {MAP_UPLOAD_LIMITS['max_target_height']:g}"
                ),
            )
        if request.theme not in THEMES:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown theme {request.theme!r}; expected one of {sorted(THEMES)}",
            )
        try:
            layers = parse_layer_names(request.layer_order)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if file.size and file.size > MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large (max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB)",
            )
        tmpdir, in_path, total = await save_upload_to_tmpdir(
            file, suffix, chunk_size=READ_CHUNK_SIZE, max_bytes=MAX_UPLOAD_BYTES
        )
        if total == 0:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")
        logger.info("[UPLOAD] /api/map/render: received %d bytes -> %s", total, in_path)

        base_name = os.path.splitext(os.path.basename(file.filename or "map"))[0] or "map"
        out_path = os.path.join(tmpdir, f"{base_name}.svg")

        ctx = await run_in_threadpool(
            render_map,
            in_path,
            out_path,
            theme=request.theme,
            target_height=request.target_height,
            layer_order=layers,
            source_format="geojson" if f".{suffix}" in GEOJSON_SUFFIXES else "osm",
            debug=request.debug,
        )

        feature_count = sum(ctx.feature_counts.values())
        logger.info(
            "[RESPONSE] %s.svg: %d features, %.1fx%.1f",
            base_name, feature_count, ctx.bounds.width, ctx.bounds.height,
        )

        background_tasks.add_task(cleanup_temp_dir, tmpdir, "tmpdir")
        success = True
        return FileResponse(
            path=out_path,
            media_type="image/svg+xml",
            filename=f"{base_name}.svg",
            headers={
                "X-Feature-Count": str(feature_count),
                "X-Canvas-Width": f"{ctx.bounds.width:.3f}",
                "X-Canvas-Height": f"{ctx.bounds.height:.3f}",
                "Cache-Control": "no-cache",
            },
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("[ERROR] /api/map/render failed")
        raise HTTPException(status_code=500, detail=f"Map rendering error: {str(e)}")
    finally:
        if not success:
            cleanup_temp_dir(tmpdir, label="tmpdir")


# --- Themes ---
@router.get(
    "/api/map/themes",
    summary="Available themes",
    tags=["Map Rendering"],
    response_model=ThemeListResponse,
)
async def list_themes():
    """Themes with their background color and per-layer CSS classes."""
    return ThemeListResponse(
        default_theme=DEFAULT_THEME,
        default_layer_order=[layer.value for layer in DEFAULT_LAYER_ORDER],
        themes=[
            ThemeInfo(
                name=theme.name,
                background=theme.background,
                classes={layer.value: class_name for layer, (class_name, _) in theme.styles.items()},
            )
            for theme in THEMES.values()
        ],
    )
