"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from negotiation.api.v1 import health, negotiations


def get_api_router(prefix: str = "/api/v1") -> APIRouter:
    api_router = APIRouter(prefix=prefix)
    api_router.include_router(health.router)
    api_router.include_router(negotiations.router)
    return api_router
