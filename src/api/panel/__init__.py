"""Seller panel API router aggregation."""

from fastapi import APIRouter

from src.api.panel.commissions import router as commissions_router

panel_router = APIRouter(prefix="/panel", tags=["Panel"])

panel_router.include_router(commissions_router)

__all__ = ["panel_router"]
