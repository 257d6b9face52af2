from fastapi import APIRouter

from api.routers.render import router as render_router
from api.routers.system import router as system_router

router = APIRouter()
router.include_router(render_router)
router.include_router(system_router)
