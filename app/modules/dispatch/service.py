"""Dispatch service: wires the pipeline components and owns their lifecycle."""

import threading
from typing import Dict, Iterable, List, Mapping, Optional

from infrastructure.configuration import Settings
from infrastructure.configuration.features.reminders import ReminderRecipient
from infrastructure.idempotency import FingerprintBuilder
from infrastructure.logging import get_module_logger
from infrastructure.persistence import StateStore, StoreUnavailable, create_state_store
from infrastructure.resilience.retry import RetryConfig
from jobs import scheduled_tasks
from modules.dispatch.escalation import Escalation, create_escalation
from modules.dispatch.intake import EventIntake
from modules.dispatch.queue import DispatchQueue
from modules.dispatch.recovery import RecoveryScan
from modules.dispatch.retention import RetentionPolicy
from modules.dispatch.senders import Sender, create_senders
from modules.dispatch.sources import (
    EventSource,
    IntakeRunner,
    SpoolDirectorySource,
    WorkingHoursReminderSource,
)
from modules.dispatch.status import StatusService
from modules.dispatch.subscriptions import SubscriptionRegistry
from modules.dispatch.worker import DeliveryWorkerPool

logger = get_module_logger()


class DispatchService:
    """The running notification pipeline.

    Startup runs the recovery scan before any worker leases work. Shutdown
    closes intake first, lets workers finish in-flight entries and closes
    the store last.
    """

    def __init__(
        self,
        store: StateStore,
        intake: EventIntake,
        queue: DispatchQueue,
        pool: DeliveryWorkerPool,
        recovery: RecoveryScan,
        retention: RetentionPolicy,
        runner: IntakeRunner,
        status: StatusService,
        subscriptions: SubscriptionRegistry,
        seed_subscriptions: Iterable[ReminderRecipient] = (),
        purge_interval_seconds: int = 3600,
        scheduler_enabled: bool = True,
    ):
        self.store = store
        self.intake = intake
        self.queue = queue
        self.pool = pool
        self.recovery = recovery
        self.retention = retention
        self.runner = runner
        self.status = status
        self.subscriptions = subscriptions
        self.seed_subscriptions = list(seed_subscriptions)
        self.purge_interval_seconds = purge_interval_seconds
        self.scheduler_enabled = scheduler_enabled

        self._shutdown = threading.Event()
        self._stop_scheduler: Optional[threading.Event] = None
        self.runner.on_fatal = self._on_fatal

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[StateStore] = None,
        senders: Optional[Mapping[str, Sender]] = None,
        escalation: Optional[Escalation] = None,
        sources: Optional[List[EventSource]] = None,
    ) -> "DispatchService":
        """Build the pipeline from configuration.

        Raises:
            ConfigurationError: A channel or escalation backend is misconfigured
            StoreUnavailable: The store cannot be opened
        """
        senders = senders if senders is not None else create_senders(settings.channels)
        escalation = escalation or create_escalation(settings.escalation)
        store = store or create_state_store(settings.store)
        subscriptions = SubscriptionRegistry(
            store, default_offset=settings.reminders.default_offset
        )
        if sources is None:
            sources = default_sources(settings, subscriptions)

        config = RetryConfig.from_settings(settings.retry, settings.workers)
        queue = DispatchQueue(store, lease_seconds=config.lease_seconds)
        intake = EventIntake(
            store,
            queue,
            FingerprintBuilder(settings.dedup.namespace),
            channels=senders.keys(),
            default_channel=settings.channels.DEFAULT_CHANNEL,
            routes=settings.intake.routes,
            dedup_window_seconds=settings.dedup.window_seconds,
            rate_limit=settings.intake.rate_limit,
        )
        pool = DeliveryWorkerPool(
            store,
            queue,
            senders,
            escalation,
            config=config,
            worker_count=settings.workers.worker_count,
            poll_interval_seconds=settings.workers.poll_interval_seconds,
            send_timeout_seconds=settings.workers.send_timeout_seconds,
        )
        return cls(
            store=store,
            intake=intake,
            queue=queue,
            pool=pool,
            recovery=RecoveryScan(store, queue, escalation, config),
            retention=RetentionPolicy(
                store,
                retention_days=settings.retention.days,
                dedup_window_seconds=settings.dedup.window_seconds,
            ),
            runner=IntakeRunner(
                intake,
                sources,
                poll_interval_seconds=settings.intake.poll_interval_seconds,
            ),
            status=StatusService(store),
            subscriptions=subscriptions,
            seed_subscriptions=(
                settings.reminders.recipients if settings.reminders.enabled else []
            ),
            purge_interval_seconds=settings.retention.purge_interval_seconds,
        )

    @property
    def fatal_error(self) -> Optional[StoreUnavailable]:
        return self.pool.fatal_error or self.runner.fatal_error

    def start(self) -> Dict[str, int]:
        """Reconcile leftover state, then start workers, intake and the scheduler.

        Configured reminder recipients not yet in the store are subscribed
        before intake starts polling.

        Returns:
            Recovery scan statistics
        """
        recovered = self.recovery.run()
        self.subscriptions.seed(self.seed_subscriptions)
        self.pool.start()
        self.runner.start()
        if self.scheduler_enabled:
            scheduled_tasks.init(self.retention, self.queue, self.purge_interval_seconds)
            self._stop_scheduler = scheduled_tasks.run_continuously()
        logger.info("dispatch_service_started", recovery=recovered)
        return recovered

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def wait(self, poll_interval: float = 1.0) -> None:
        """Block until shutdown is requested or a component hits a fatal error."""
        while not self._shutdown.wait(poll_interval):
            if self.fatal_error is not None:
                break

    def stop(self, timeout: Optional[float] = 30.0) -> None:
        logger.info("dispatch_service_stopping")
        self.intake.close()
        self.runner.stop(timeout)
        self.pool.stop(timeout)
        if self._stop_scheduler is not None:
            self._stop_scheduler.set()
            scheduled_tasks.clear()
            self._stop_scheduler = None
        self.store.close()
        logger.info("dispatch_service_stopped")

    def _on_fatal(self, error: StoreUnavailable) -> None:
        logger.critical("dispatch_fatal_error", error=str(error))
        self._shutdown.set()


def default_sources(
    settings: Settings, subscriptions: SubscriptionRegistry
) -> List[EventSource]:
    sources: List[EventSource] = []
    if settings.intake.spool_enabled:
        sources.append(SpoolDirectorySource(settings.store.data_dir))
    if settings.reminders.enabled:
        sources.append(
            WorkingHoursReminderSource.from_settings(settings.reminders, subscriptions)
        )
    return sources
