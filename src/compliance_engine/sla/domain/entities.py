"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

These entities carry no infrastructure concerns; the repositories map ORM
rows onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from compliance_engine.config import SlaStatus, WorkItemStatus


@dataclass
class TimedWorkItem:
    """
    One trackable unit of compliance work (a workflow instance wrapping a
    case or investigation) carrying a deadline and a current stage.
    """

    id: str
    tenant_id: str
    entity_type: str
    entity_id: str
    current_stage: str
    status: WorkItemStatus
    created_at: datetime

    # Key into the SLA policy set, usually the workflow template name
    work_type: Optional[str] = None

    due_date: Optional[datetime] = None
    sla_status: SlaStatus = SlaStatus.ON_TRACK
    sla_breached_at: Optional[datetime] = None

    @property
    def is_trackable(self) -> bool:
        """SLA status only means something while active with a due date."""
        return self.status == WorkItemStatus.ACTIVE and self.due_date is not None

    @property
    def is_overdue(self) -> bool:
        return self.sla_status == SlaStatus.OVERDUE


@dataclass
class SweepResult:
    """Counters for one sweep, returned to the scheduler for observability."""

    checked: int = 0
    warnings_raised: int = 0
    breaches_raised: int = 0
    escalations_raised: int = 0
    failed: int = 0
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    failed_item_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "warnings_raised": self.warnings_raised,
            "breaches_raised": self.breaches_raised,
            "escalations_raised": self.escalations_raised,
            "failed": self.failed,
            "duration_ms": round(self.duration_ms, 2),
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }
