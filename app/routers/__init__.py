"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.gateways import router as gateways_router
from app.routers.messages import router as messages_router

__all__ = ["auth_router", "gateways_router", "messages_router"]
