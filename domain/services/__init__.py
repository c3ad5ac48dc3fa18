"""
Domain services containing pure selection logic.
"""

from domain.services.team_balancing_service import TeamBalancingService

__all__ = ["TeamBalancingService"]
