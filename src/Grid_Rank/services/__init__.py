"""Operational services.

Re-exports all public service classes so consumers can import directly:
    from Grid_Rank.services import HealthService
"""

from Grid_Rank.services.health import HealthService

__all__ = ["HealthService"]
