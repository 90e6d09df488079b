"""HTTP API routers."""

from .endpoints import router, init_dependencies
from .inspector import router as inspector_router

__all__ = ["router", "inspector_router", "init_dependencies"]
