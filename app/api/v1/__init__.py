from fastapi import APIRouter

from app.api.v1.routers import funding_requests, health

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(funding_requests.router)

__all__ = ["api_router"]
