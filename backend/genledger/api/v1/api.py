"""API routes for the FastAPI application."""

from fastapi import APIRouter

from genledger.api.v1.endpoints import accounts, billing, health

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
