"""Complaint Tracker - API Routers"""
from .complaints import router as complaints_router
from .dashboard import router as dashboard_router
from .sync import router as sync_router

__all__ = [
    "complaints_router",
    "dashboard_router",
    "sync_router",
]
