"""
Assignment Application Layer
=============================

Contains:
- AssignmentResolver: the ordered resolution chain
- Strategies and the strategy registry
- Repository interfaces the strategies read through
"""

from compliance_engine.assignment.application.interfaces import (
    IAssignmentHistory,
    ICategoryRoutingProvider,
    IUserDirectory,
)
from compliance_engine.assignment.application.services import AssignmentResolver
from compliance_engine.assignment.application.strategies import (
    AssignmentStrategy,
    GeographicStrategy,
    LeastLoadedStrategy,
    RoundRobinStrategy,
    StrategyRegistry,
    build_default_registry,
)

__all__ = [
    # Services
    "AssignmentResolver",
    # Strategies
    "AssignmentStrategy",
    "GeographicStrategy",
    "LeastLoadedStrategy",
    "RoundRobinStrategy",
    "StrategyRegistry",
    "build_default_registry",
    # Interfaces
    "IAssignmentHistory",
    "ICategoryRoutingProvider",
    "IUserDirectory",
]
