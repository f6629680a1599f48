"""Route aggregation -- combines all API sub-routers into a single router."""

from fastapi import APIRouter

from remote_code.api.execute import router as execute_router
from remote_code.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(execute_router)
