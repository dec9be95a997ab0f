"""
Compliance Engine - Worker Process
===================================

Background process hosting the SLA sweep scheduler and the assignment
resolver used by the background-job layer.

Layers:
- Application: SlaTracker, AssignmentResolver, strategies
- Domain: entities, value objects, events
- Infrastructure: database, policy file watcher, event publishers,
  scheduler
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, List, Optional

from compliance_engine.assignment.application import AssignmentResolver, build_default_registry
from compliance_engine.assignment.infrastructure import (
    SQLAlchemyAssignmentHistory,
    SQLAlchemyCategoryRoutingProvider,
    SQLAlchemyUserDirectory,
)
from compliance_engine.config import Settings, settings as default_settings
from compliance_engine.infrastructure.database import close_database, init_database
from compliance_engine.shared.infrastructure.logging import get_logger, setup_logging
from compliance_engine.sla.application import IEventPublisher, SlaTracker
from compliance_engine.sla.infrastructure import (
    CallbackEventPublisher,
    CompositeEventPublisher,
    SlaConfigManager,
    SlaScheduler,
    SQLAlchemyWorkItemRepository,
    WebhookEventPublisher,
)

logger = get_logger(__name__)


@dataclass
class EngineServices:
    """Wired services handed to the hosting process."""
    config_manager: SlaConfigManager
    events: CallbackEventPublisher
    tracker: SlaTracker
    scheduler: SlaScheduler
    resolver: AssignmentResolver
    webhook: Optional[WebhookEventPublisher] = None


@asynccontextmanager
async def lifespan(app_settings: Optional[Settings] = None) -> AsyncGenerator[EngineServices, None]:
    """
    Engine lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Load SLA policies and watch the file
    4. Wire event publishers, tracker and scheduler
    5. Build the assignment resolver with the built-in strategies
    6. Start the periodic sweep

    SHUTDOWN (reverse order):
    1. Stop the scheduler
    2. Stop the policy watcher
    3. Close the event webhook client
    4. Close database connections
    """
    cfg = app_settings or default_settings

    # === STARTUP ===
    setup_logging(cfg.log_level, cfg.environment)
    logger.info("Starting compliance engine", extra={
        "version": cfg.app_version,
        "environment": cfg.environment
    })

    init_database(cfg.database_url)

    config_manager = SlaConfigManager()
    config_manager.load(cfg.sla_config_path)
    config_manager.start_watching()

    events = CallbackEventPublisher()
    publishers: List[IEventPublisher] = [events]
    webhook = None
    if cfg.event_webhook_url:
        webhook = WebhookEventPublisher(cfg.event_webhook_url, cfg.event_webhook_timeout_seconds)
        publishers.append(webhook)
    else:
        logger.info("Event webhook not configured - SLA events stay in-process")

    tracker = SlaTracker(
        SQLAlchemyWorkItemRepository(),
        config_manager,
        CompositeEventPublisher(publishers),
        poll_interval_seconds=cfg.sla_poll_interval_seconds,
    )
    scheduler = SlaScheduler(tracker, interval_seconds=cfg.sla_poll_interval_seconds)

    users = SQLAlchemyUserDirectory()
    resolver = AssignmentResolver(
        users,
        SQLAlchemyCategoryRoutingProvider(),
        build_default_registry(users, SQLAlchemyAssignmentHistory(), cfg.default_rotation_roles),
        fallback_roles=cfg.default_rotation_roles,
    )

    if cfg.sla_scheduler_enabled:
        await scheduler.start()
    else:
        logger.info("SLA scheduler disabled by configuration")

    logger.info("Compliance engine started successfully")

    try:
        yield EngineServices(
            config_manager=config_manager,
            events=events,
            tracker=tracker,
            scheduler=scheduler,
            resolver=resolver,
            webhook=webhook,
        )
    finally:
        # === SHUTDOWN ===
        logger.info("Shutting down compliance engine")
        await scheduler.stop()
        config_manager.stop_watching()
        if webhook:
            await webhook.close()
        await close_database()
        logger.info("Compliance engine shutdown complete")


async def serve() -> None:
    """Run the engine until SIGINT / SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    async with lifespan():
        await stop_event.wait()


def run() -> None:
    """Console entry point."""
    asyncio.run(serve())


if __name__ == "__main__":
    run()
