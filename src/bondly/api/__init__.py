"""API routes."""

from fastapi import APIRouter

from .advice import router as advice_router
from .analyze import router as analyze_router
from .cleanup import router as cleanup_router
from .health import router as health_router
from .partner import router as partner_router
from .sessions import router as sessions_router

api_router = APIRouter(prefix="/api")
api_router.include_router(sessions_router)
api_router.include_router(partner_router)
api_router.include_router(analyze_router)
api_router.include_router(advice_router)
api_router.include_router(cleanup_router)

router = APIRouter()
router.include_router(health_router)
router.include_router(api_router)
