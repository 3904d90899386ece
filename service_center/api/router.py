"""Top-level API router."""

from fastapi import APIRouter

from service_center.api.routes.access import router as access_router
from service_center.api.routes.admin import router as admin_router
from service_center.api.routes.dashboards import router as dashboards_router
from service_center.api.routes.exports import router as exports_router
from service_center.api.routes.health import router as health_router
from service_center.api.routes.me import router as me_router
from service_center.api.routes.reports import router as reports_router
from service_center.api.routes.targets import router as targets_router
from service_center.api.routes.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(access_router)
api_router.include_router(admin_router)
api_router.include_router(uploads_router)
api_router.include_router(targets_router)
api_router.include_router(reports_router)
api_router.include_router(dashboards_router)
api_router.include_router(exports_router)
