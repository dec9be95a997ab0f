"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- Events: In-process event publishers
- External: Policy file watcher, event webhook, scheduler
"""

from compliance_engine.sla.infrastructure.events import (
    CallbackEventPublisher,
    CompositeEventPublisher,
)
from compliance_engine.sla.infrastructure.external import (
    CircuitBreaker,
    CircuitState,
    SlaConfigManager,
    SlaScheduler,
    WebhookEventPublisher,
)
from compliance_engine.sla.infrastructure.models import WorkflowInstanceModel
from compliance_engine.sla.infrastructure.repositories import SQLAlchemyWorkItemRepository

__all__ = [
    "WorkflowInstanceModel",
    "SQLAlchemyWorkItemRepository",
    "CallbackEventPublisher",
    "CompositeEventPublisher",
    "CircuitBreaker",
    "CircuitState",
    "SlaConfigManager",
    "SlaScheduler",
    "WebhookEventPublisher",
]
