from fastapi import APIRouter

from careers.modules.applications import router as admin_applications_router

api_router = APIRouter()

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)
