from fastapi import APIRouter

from app.api.v1 import health, receipts, dashboard

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
