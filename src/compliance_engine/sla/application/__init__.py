"""
SLA Application Layer
======================

Contains:
- SlaTracker: the sweep over active work items
- Repository / provider / publisher interfaces it depends on

This layer depends on the domain layer and the interfaces,
but not on concrete infrastructure implementations.
"""

from compliance_engine.sla.application.services import (
    IEventPublisher,
    ISlaConfigProvider,
    IWorkItemRepository,
    SlaTracker,
)

__all__ = [
    # Services
    "SlaTracker",
    # Interfaces
    "IWorkItemRepository",
    "ISlaConfigProvider",
    "IEventPublisher",
]
