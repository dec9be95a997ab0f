"""In-memory implementations of the engine's repository and publisher interfaces."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from compliance_engine.assignment.application import (
    IAssignmentHistory,
    ICategoryRoutingProvider,
    IUserDirectory,
)
from compliance_engine.assignment.domain import (
    CategoryRoutingConfig,
    EligibleUser,
    LastAssignmentRecord,
)
from compliance_engine.config import SlaStatus, UserRole, WorkItemStatus
from compliance_engine.core import EventPublishException, RepositoryException
from compliance_engine.sla.application import IEventPublisher, ISlaConfigProvider, IWorkItemRepository
from compliance_engine.sla.domain import SlaConfig, SlaEvent, SlaPolicySet, TimedWorkItem

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Mutable clock for deterministic SLA evaluation."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_item(
    item_id: str = "wf-1",
    *,
    due_in_hours: Optional[float] = 48,
    created_hours_ago: float = 24,
    sla_status: SlaStatus = SlaStatus.ON_TRACK,
    status: WorkItemStatus = WorkItemStatus.ACTIVE,
    work_type: Optional[str] = None,
    sla_breached_at: Optional[datetime] = None,
    now: datetime = NOW,
) -> TimedWorkItem:
    return TimedWorkItem(
        id=item_id,
        tenant_id="tenant-1",
        entity_type="CASE",
        entity_id=f"case-{item_id}",
        current_stage="investigation",
        status=status,
        created_at=now - timedelta(hours=created_hours_ago),
        work_type=work_type,
        due_date=None if due_in_hours is None else now + timedelta(hours=due_in_hours),
        sla_status=sla_status,
        sla_breached_at=sla_breached_at,
    )


class InMemoryWorkItemRepository(IWorkItemRepository):
    def __init__(self, items: Iterable[TimedWorkItem] = ()) -> None:
        self.items: Dict[str, TimedWorkItem] = {item.id: item for item in items}
        self.updates: List[tuple] = []
        self.fail_updates_for: set[str] = set()

    async def list_active_timed_items(self) -> List[TimedWorkItem]:
        # Snapshot copies, like rows freshly loaded from a database
        return [replace(item) for item in self.items.values() if item.is_trackable]

    async def get_by_id(self, item_id: str) -> Optional[TimedWorkItem]:
        return self.items.get(item_id)

    async def update_item_sla_status(
        self,
        item_id: str,
        status: SlaStatus,
        breached_at: Optional[datetime] = None,
    ) -> None:
        if item_id in self.fail_updates_for:
            raise RepositoryException(f"Database unavailable for {item_id}")
        item = self.items[item_id]
        item.sla_status = status
        if breached_at is not None:
            item.sla_breached_at = breached_at
        self.updates.append((item_id, status, breached_at))


class StaticSlaConfigProvider(ISlaConfigProvider):
    def __init__(self, policies: Optional[SlaPolicySet] = None) -> None:
        self.policies = policies or SlaPolicySet()

    def snapshot(self) -> SlaPolicySet:
        return self.policies

    def get_config(self, work_type: Optional[str]) -> SlaConfig:
        return self.policies.get_config(work_type)


class RecordingPublisher(IEventPublisher):
    def __init__(self, fail: bool = False) -> None:
        self.events: List[SlaEvent] = []
        self.fail = fail

    async def publish(self, event: SlaEvent) -> None:
        if self.fail:
            raise EventPublishException("dispatcher unreachable")
        self.events.append(event)


def make_user(
    user_id: str,
    *,
    order: int,
    role: str = UserRole.INVESTIGATOR.value,
    team_id: Optional[str] = None,
    is_active: bool = True,
    tenant_id: str = "tenant-1",
) -> EligibleUser:
    return EligibleUser(
        id=user_id,
        tenant_id=tenant_id,
        role=role,
        team_id=team_id,
        is_active=is_active,
        created_at=NOW - timedelta(days=100 - order),
    )


class InMemoryUserDirectory(IUserDirectory):
    def __init__(self, users: Iterable[EligibleUser] = (), loads: Optional[Dict[str, int]] = None) -> None:
        self.users = list(users)
        self.loads = dict(loads or {})

    async def list_eligible_users(
        self,
        tenant_id: str,
        roles: Optional[Sequence[str]] = None,
    ) -> List[EligibleUser]:
        eligible = [
            user for user in self.users
            if user.tenant_id == tenant_id and user.is_active and (not roles or user.role in roles)
        ]
        return sorted(eligible, key=lambda user: (user.created_at, user.id))

    async def get_active_user(self, tenant_id: str, user_id: str) -> Optional[EligibleUser]:
        for user in self.users:
            if user.id == user_id and user.tenant_id == tenant_id and user.is_active:
                return user
        return None

    async def count_open_items_for_user(self, user_id: str) -> int:
        return self.loads.get(user_id, 0)


class InMemoryAssignmentHistory(IAssignmentHistory):
    def __init__(self) -> None:
        self.records: List[tuple[str, str, LastAssignmentRecord]] = []

    def record(self, user_id: str, tenant_id: str = "tenant-1", entity_type: str = "CASE") -> None:
        self.records.append((tenant_id, entity_type, LastAssignmentRecord(user_id=user_id)))

    async def find_last_assignment_record(
        self,
        tenant_id: str,
        entity_type: str,
    ) -> Optional[LastAssignmentRecord]:
        for record_tenant, record_type, record in reversed(self.records):
            if record_tenant == tenant_id and record_type == entity_type:
                return record
        return None


class InMemoryCategoryRouting(ICategoryRoutingProvider):
    def __init__(self, configs: Iterable[CategoryRoutingConfig] = ()) -> None:
        self.configs = {config.category_id: config for config in configs}

    async def get_category_routing_config(self, category_id: str) -> Optional[CategoryRoutingConfig]:
        return self.configs.get(category_id)
