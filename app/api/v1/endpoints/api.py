from fastapi import APIRouter

from app.api.v1.endpoints import notifications, tracking

api_router = APIRouter()

# Registering specialized controllers
api_router.include_router(tracking.router, prefix="/tracking", tags=["Tracking"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
