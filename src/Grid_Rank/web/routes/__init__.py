"""FastAPI route modules for Grid Rank.

Re-exports all routers so the application factory can import them:
    from Grid_Rank.web.routes import health_router, insights_router, scan_router
"""

from Grid_Rank.web.routes.health import router as health_router
from Grid_Rank.web.routes.insights import router as insights_router
from Grid_Rank.web.routes.scan import router as scan_router

__all__ = [
    "health_router",
    "insights_router",
    "scan_router",
]
