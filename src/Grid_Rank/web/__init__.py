"""FastAPI web layer for Grid Rank.

Re-exports the application factory so consumers can import directly:
    from Grid_Rank.web import create_app
"""

from Grid_Rank.web.app import create_app

__all__ = ["create_app"]
