"""
SLA Domain Layer
================

Contains:
- Entities: TimedWorkItem, SweepResult
- Value Objects: SlaConfig, SlaPolicySet, SlaCalculation
- Domain Services: SlaCalculator (pure)
- Events: SlaWarningRaised, SlaBreachRaised

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from compliance_engine.sla.domain.entities import SweepResult, TimedWorkItem
from compliance_engine.sla.domain.events import SlaBreachRaised, SlaEvent, SlaWarningRaised
from compliance_engine.sla.domain.value_objects import (
    SlaCalculation,
    SlaCalculator,
    SlaConfig,
    SlaPolicySet,
    utc_now,
)

__all__ = [
    # Entities
    "TimedWorkItem",
    "SweepResult",
    # Events
    "SlaEvent",
    "SlaWarningRaised",
    "SlaBreachRaised",
    # Value Objects & Services
    "SlaCalculation",
    "SlaCalculator",
    "SlaConfig",
    "SlaPolicySet",
    "utc_now",
]
