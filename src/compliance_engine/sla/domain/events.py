"""
SLA Domain Events
==================

Events raised by the sweep on SLA transitions. Consumed asynchronously by
the notification dispatcher, which lives outside this engine.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from compliance_engine.config import ActorType, BreachLevel
from compliance_engine.sla.domain.value_objects import utc_now


@dataclass(frozen=True)
class SlaEvent:
    event_name: ClassVar[str] = "workflow.sla"

    tenant_id: str
    instance_id: str
    entity_type: str
    entity_id: str
    stage: str

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation, tagged with the event name."""
        payload: dict[str, Any] = {"event": self.event_name}
        for key, value in asdict(self).items():
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            payload[key] = value
        return payload


@dataclass(frozen=True)
class SlaWarningRaised(SlaEvent):
    """Item moved from on track to at risk."""

    event_name: ClassVar[str] = "workflow.sla_warning"

    due_date: Optional[datetime] = None
    percent_used: float = 0.0
    actor_type: ActorType = ActorType.SYSTEM
    occurred_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SlaBreachRaised(SlaEvent):
    """Item went overdue, or an overdue item crossed the critical threshold."""

    event_name: ClassVar[str] = "workflow.sla_breach"

    breach_level: BreachLevel = BreachLevel.BREACHED
    hours_overdue: float = 0.0
    actor_type: ActorType = ActorType.SYSTEM
    occurred_at: datetime = field(default_factory=utc_now)
