"""Arbitrator API: modular routers under /admin."""
from fastapi import APIRouter

from paybox.admin.routers import boxes, settings

admin_router = APIRouter(prefix="/admin", tags=["admin"])

admin_router.include_router(boxes.router, prefix="/boxes", tags=["admin-boxes"])
admin_router.include_router(settings.router, prefix="/settings", tags=["admin-settings"])
