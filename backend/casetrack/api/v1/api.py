"""
Main API router aggregator
"""
from fastapi import APIRouter

from casetrack.api.v1.endpoints import (
    admin,
    arbitration,
    health,
    litigation_cases,
)

api_router = APIRouter()

# Include routers
api_router.include_router(litigation_cases.router, prefix="/litigation-cases", tags=["Litigation Cases"])
api_router.include_router(arbitration.router, prefix="/arbitration", tags=["Arbitration"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])
