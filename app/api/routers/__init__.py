"""
app/api/routers package marker.
"""

from app.api.routers.discovery import router as discovery_router
from app.api.routers.exports import router as exports_router
from app.api.routers.transfer import router as transfer_router

__all__ = [
    "discovery_router",
    "exports_router",
    "transfer_router",
]
