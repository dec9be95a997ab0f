"""
Assignment Domain Layer
========================

Contains:
- Entities: EligibleUser
- Value Objects: AssignmentContext, AssignmentResult, routing rule and
  strategy configs
"""

from compliance_engine.assignment.domain.entities import EligibleUser
from compliance_engine.assignment.domain.value_objects import (
    AssignmentContext,
    AssignmentResult,
    CategoryRef,
    CategoryRoutingConfig,
    GeographicConfig,
    LastAssignmentRecord,
    LeastLoadedConfig,
    LocationRef,
    RoundRobinConfig,
    RoutingRule,
    StrategyConfig,
)

__all__ = [
    "EligibleUser",
    "AssignmentContext",
    "AssignmentResult",
    "CategoryRef",
    "CategoryRoutingConfig",
    "GeographicConfig",
    "LastAssignmentRecord",
    "LeastLoadedConfig",
    "LocationRef",
    "RoundRobinConfig",
    "RoutingRule",
    "StrategyConfig",
]
