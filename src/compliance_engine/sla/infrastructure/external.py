"""
SLA External Service Integrations
==================================

External services for SLA tracking:
- YAML policy file loading with watchdog hot-reload
- Webhook forwarding of SLA events to the notification dispatcher
- APScheduler-driven periodic sweep with an overlap guard
"""

import asyncio
import threading
import time
from pathlib import Path
from typing import Optional

import httpx
import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from compliance_engine.config import settings
from compliance_engine.core import ConfigurationException, EventPublishException
from compliance_engine.shared.infrastructure.logging import get_logger, log_latency
from compliance_engine.sla.application import IEventPublisher, ISlaConfigProvider, SlaTracker
from compliance_engine.sla.domain import SlaConfig, SlaEvent, SlaPolicySet, SweepResult

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA policy file changes."""

    def __init__(self, config_manager: "SlaConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info(f"SLA policy file changed: {event.src_path}")
            self.config_manager.reload()


class SlaConfigManager(ISlaConfigProvider):
    """
    Thread-safe SLA policy provider with hot-reload support.

    A sweep reads one SlaConfig per item; a reload swaps the whole policy
    set atomically, so configs are immutable for the duration of a read.
    """

    def __init__(self):
        self._policies: Optional[SlaPolicySet] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SlaPolicySet:
        """Initial policy load. Missing file means defaults."""
        self._path = Path(path)
        policies = self._load_from_file(self._path)
        with self._lock:
            self._policies = policies
        return policies

    def _load_from_file(self, path: Path) -> SlaPolicySet:
        if not path.exists():
            logger.warning(f"SLA config file not found: {path}, using defaults")
            return SlaPolicySet()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return SlaPolicySet.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigurationException(
                f"Invalid SLA config file {path}: {e}",
                {"path": str(path)}
            )

    def reload(self) -> bool:
        """Reload policies; on failure the previous set stays in effect."""
        if self._path is None:
            return False

        try:
            new_policies = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error(f"Failed to reload SLA config: {e}")
            return False

        with self._lock:
            self._policies = new_policies
        logger.info(
            "SLA configuration reloaded successfully",
            extra={"work_types": sorted(new_policies.work_types)}
        )
        return True

    def start_watching(self) -> None:
        """
        Start watching the policy file for changes.

        Skipped when the file does not exist or the platform cannot watch
        files (e.g. some container filesystems).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(f"SLA config file doesn't exist, skipping file watch: {self._path}")
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                ConfigFileHandler(self, self._path),
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching SLA config file: {self._path}")
        except OSError as e:
            logger.warning(f"File watching not available, using static config: {e}")
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def policies(self) -> SlaPolicySet:
        with self._lock:
            if self._policies is None:
                raise RuntimeError("SLA configuration not loaded")
            return self._policies

    def snapshot(self) -> SlaPolicySet:
        return self.policies

    def get_config(self, work_type: Optional[str]) -> SlaConfig:
        return self.policies.get_config(work_type)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for the event webhook.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class WebhookEventPublisher(IEventPublisher):
    """
    Forwards SLA events as JSON to the notification dispatcher.

    Retries with exponential backoff and stops calling a failing endpoint
    through a circuit breaker. Raises EventPublishException when the event
    could not be delivered; the tracker logs and swallows it.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: Optional[float] = None,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self._url = url
        self._timeout = timeout_seconds or settings.event_webhook_timeout_seconds
        self._max_retries = max(1, max_retries)
        self._backoff_seconds = backoff_seconds
        self._http_client = client
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def publish(self, event: SlaEvent) -> None:
        if not self._circuit_breaker.allow_request():
            raise EventPublishException(
                "Circuit breaker open, event not forwarded",
                {"event": event.event_name, "instance_id": event.instance_id}
            )

        payload = event.to_payload()

        for attempt in range(self._max_retries):
            try:
                response = await self._get_client().post(self._url, json=payload)
                if response.is_success:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "SLA event forwarded",
                        extra={"event": event.event_name, "instance_id": event.instance_id}
                    )
                    return
                logger.warning(
                    "Event webhook returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                logger.error(
                    "Event webhook call failed",
                    extra={"error": str(e), "attempt": attempt + 1, "instance_id": event.instance_id}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_seconds * 2 ** attempt)

        self._circuit_breaker.record_failure()
        raise EventPublishException(
            f"Failed to forward {event.event_name} after {self._max_retries} attempts",
            {"instance_id": event.instance_id}
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SlaScheduler:
    """
    Runs SlaTracker.sweep on a fixed interval using APScheduler.

    A single process-local guard makes sweeps mutually exclusive: a timer
    tick or manual trigger that finds a sweep in progress is skipped, never
    queued. The guard is a non-blocking lock acquire, so check-and-set is
    atomic.
    """

    JOB_ID = "sla_sweep"

    def __init__(self, tracker: SlaTracker, interval_seconds: Optional[int] = None):
        self._tracker = tracker
        self.interval_seconds = interval_seconds or settings.sla_poll_interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._guard = asyncio.Lock()
        self._last_result: Optional[SweepResult] = None

    async def start(self) -> None:
        """Start the periodic sweep."""
        if self.is_started:
            logger.warning("SLA scheduler already started")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="SLA Sweep Job",
            misfire_grace_time=60,
            coalesce=True,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()

        logger.info(
            "SLA scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        """Stop the timer. A sweep already in flight runs to completion."""
        if not self.is_started:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("SLA scheduler stopped")

    async def trigger_now(self) -> Optional[SweepResult]:
        """
        Run a sweep immediately, outside the timer.

        Returns:
            The sweep result, or None when a sweep was already running
        """
        return await self._run_guarded("manual")

    async def _tick(self) -> None:
        try:
            await self._run_guarded("timer")
        except Exception as e:
            logger.error(f"SLA sweep failed: {e}", extra={"source": "timer"})

    async def _run_guarded(self, source: str) -> Optional[SweepResult]:
        if self._guard.locked():
            logger.warning(
                "SLA sweep already in progress, skipping",
                extra={"source": source}
            )
            return None

        async with self._guard:
            with log_latency(logger, "sla_sweep", source=source):
                result = await self._tracker.sweep()
            self._last_result = result
            return result

    @property
    def is_running(self) -> bool:
        """True while a sweep is executing."""
        return self._guard.locked()

    @property
    def is_started(self) -> bool:
        """True while the periodic timer is active."""
        return self._scheduler is not None and self._scheduler.running

    @property
    def last_result(self) -> Optional[SweepResult]:
        return self._last_result
