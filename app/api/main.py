from fastapi import APIRouter

from app.api.routes import estimate, health

api_router = APIRouter()

api_router.include_router(estimate.router, prefix="", tags=["Estimation"])
api_router.include_router(health.router, prefix="", tags=["Health"])

__all__ = ["api_router"]
