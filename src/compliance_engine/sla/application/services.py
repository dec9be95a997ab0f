"""
SLA Application Services
=========================

Application services orchestrate the SLA domain and coordinate between
the calculator, the work item store and the event publisher.

The sweep depends on the abstractions below, never on concrete
infrastructure.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from compliance_engine.config import BreachLevel, SlaLevel, SlaStatus, settings
from compliance_engine.shared.infrastructure.logging import get_context_logger, get_logger
from compliance_engine.sla.domain import (
    SlaBreachRaised,
    SlaCalculation,
    SlaCalculator,
    SlaConfig,
    SlaEvent,
    SlaPolicySet,
    SlaWarningRaised,
    SweepResult,
    TimedWorkItem,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IWorkItemRepository(ABC):
    """Interface for timed work item access."""

    @abstractmethod
    async def list_active_timed_items(self) -> List[TimedWorkItem]:
        """Items that are ACTIVE and have a due date."""

    @abstractmethod
    async def get_by_id(self, item_id: str) -> Optional[TimedWorkItem]:
        """Get a single item by ID."""

    @abstractmethod
    async def update_item_sla_status(
        self,
        item_id: str,
        status: SlaStatus,
        breached_at: Optional[datetime] = None
    ) -> None:
        """Persist a new SLA status; ``breached_at`` is only set when given."""


class ISlaConfigProvider(ABC):
    """Interface for per-work-type SLA configuration."""

    @abstractmethod
    def get_config(self, work_type: Optional[str]) -> SlaConfig:
        """Get the SLA config for a work type."""

    @abstractmethod
    def snapshot(self) -> SlaPolicySet:
        """The policy set currently in effect, read once per sweep."""


class IEventPublisher(ABC):
    """Interface for handing SLA events to the notification side."""

    @abstractmethod
    async def publish(self, event: SlaEvent) -> None:
        """Publish one event. May raise; callers isolate failures."""


# ========== Application Services ==========

class SlaTracker:
    """
    Runs SLA sweeps over every active timed work item.

    Only status transitions are persisted, and events are emitted after the
    write succeeds. Per-item failures are logged and skipped so one bad item
    never aborts the sweep.
    """

    def __init__(
        self,
        work_item_repository: IWorkItemRepository,
        config_provider: ISlaConfigProvider,
        event_publisher: IEventPublisher,
        calculator: Optional[SlaCalculator] = None,
        poll_interval_seconds: Optional[int] = None
    ):
        self._items = work_item_repository
        self._config_provider = config_provider
        self._publisher = event_publisher
        self._calculator = calculator or SlaCalculator()
        interval = poll_interval_seconds or settings.sla_poll_interval_seconds
        self._poll_interval_hours = interval / 3600
        self._last_sweep_at: Optional[datetime] = None

    @property
    def calculator(self) -> SlaCalculator:
        return self._calculator

    async def sweep(self) -> SweepResult:
        """
        Evaluate every active item once.

        Returns:
            SweepResult with counts of checked items and raised events
        """
        sweep_log = get_context_logger(__name__, uuid4().hex[:12])
        started = time.perf_counter()
        now = self._calculator.now()
        result = SweepResult(started_at=now)
        policies = self._config_provider.snapshot()
        window_hours = self._escalation_window_hours(now)

        items = await self._items.list_active_timed_items()
        result.checked = len(items)

        for item in items:
            if not item.is_trackable:
                continue
            try:
                await self._process_item(item, now, policies, window_hours, result, sweep_log)
            except Exception as e:
                result.failed += 1
                result.failed_item_ids.append(item.id)
                sweep_log.error(
                    f"Failed to update SLA for instance {item.id}: {e}",
                    extra={"instance_id": item.id, "tenant_id": item.tenant_id}
                )

        self._last_sweep_at = now
        result.duration_ms = (time.perf_counter() - started) * 1000
        sweep_log.info(
            f"SLA check complete: {result.checked} checked, "
            f"{result.warnings_raised} warnings, {result.breaches_raised} breaches",
            extra=result.to_dict()
        )
        return result

    async def check_item(self, item_id: str) -> Optional[SlaCalculation]:
        """
        Calculate (without persisting) the SLA of one item.

        Returns:
            SlaCalculation, or None if the item is missing or has no due date
        """
        item = await self._items.get_by_id(item_id)
        if item is None or item.due_date is None:
            return None

        config = self._config_provider.snapshot().get_config(item.work_type)
        return self._calculator.calculate(item.due_date, item.created_at, config)

    async def _process_item(
        self,
        item: TimedWorkItem,
        now: datetime,
        policies: SlaPolicySet,
        window_hours: float,
        result: SweepResult,
        sweep_log
    ) -> None:
        config = policies.get_config(item.work_type)
        calc = self._calculator.calculate(item.due_date, item.created_at, config, now=now)

        previous = item.sla_status
        new_status = SlaCalculator.to_persisted_status(calc.status)

        if new_status == previous:
            if item.is_overdue and self._just_became_critical(calc, config, window_hours):
                result.escalations_raised += 1
                await self._emit(self._breach_event(item, calc), sweep_log)
            return

        # First entry into OVERDUE stamps the breach time; later ones keep it
        breached_at = None
        if new_status == SlaStatus.OVERDUE and item.sla_breached_at is None:
            breached_at = calc.breached_at or now

        await self._items.update_item_sla_status(item.id, new_status, breached_at)

        if calc.status == SlaLevel.WARNING and previous == SlaStatus.ON_TRACK:
            result.warnings_raised += 1
            await self._emit(self._warning_event(item, calc), sweep_log)

        if new_status == SlaStatus.OVERDUE:
            result.breaches_raised += 1
            await self._emit(self._breach_event(item, calc), sweep_log)

    def _escalation_window_hours(self, now: datetime) -> float:
        """Hours since the previous sweep; the poll interval before the first one."""
        if self._last_sweep_at is None or self._last_sweep_at > now:
            return self._poll_interval_hours
        return (now - self._last_sweep_at).total_seconds() / 3600

    @staticmethod
    def _just_became_critical(calc: SlaCalculation, config: SlaConfig, window_hours: float) -> bool:
        """
        True only on the sweep where the item crossed the critical threshold.

        The crossing instant (due date plus the critical threshold) must fall
        after the previous sweep and no later than this one.
        """
        if calc.status != SlaLevel.CRITICAL:
            return False
        return calc.hours_overdue - config.critical_threshold_hours < window_hours

    async def _emit(self, event: SlaEvent, sweep_log) -> None:
        try:
            await self._publisher.publish(event)
            sweep_log.debug(
                f"Emitted {event.event_name} for instance {event.instance_id}",
                extra={"instance_id": event.instance_id, "tenant_id": event.tenant_id}
            )
        except Exception as e:
            sweep_log.error(
                f"Failed to emit {event.event_name} event: {e}",
                extra={"instance_id": event.instance_id, "tenant_id": event.tenant_id}
            )

    @staticmethod
    def _warning_event(item: TimedWorkItem, calc: SlaCalculation) -> SlaWarningRaised:
        return SlaWarningRaised(
            tenant_id=item.tenant_id,
            instance_id=item.id,
            entity_type=item.entity_type,
            entity_id=item.entity_id,
            stage=item.current_stage,
            due_date=item.due_date,
            percent_used=calc.percent_used,
        )

    @staticmethod
    def _breach_event(item: TimedWorkItem, calc: SlaCalculation) -> SlaBreachRaised:
        level = BreachLevel.CRITICAL if calc.status == SlaLevel.CRITICAL else BreachLevel.BREACHED
        return SlaBreachRaised(
            tenant_id=item.tenant_id,
            instance_id=item.id,
            entity_type=item.entity_type,
            entity_id=item.entity_id,
            stage=item.current_stage,
            breach_level=level,
            hours_overdue=calc.hours_overdue,
        )
