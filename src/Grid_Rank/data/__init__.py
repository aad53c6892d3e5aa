"""Persistence layer for Grid Rank scan history.

Re-exports the main public API: Database for connection management,
Repository for typed query operations.
"""

from Grid_Rank.data.database import Database
from Grid_Rank.data.repository import Repository

__all__ = ["Database", "Repository"]
