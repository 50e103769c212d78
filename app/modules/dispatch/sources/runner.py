"""Intake runner: polls event sources and submits their events."""

import threading
from typing import Callable, Dict, Optional, Sequence

from infrastructure.logging import get_module_logger
from infrastructure.persistence import StoreUnavailable
from modules.dispatch.errors import (
    DuplicateRejected,
    IntakeClosed,
    IntakeRejected,
)
from modules.dispatch.intake import EventIntake
from modules.dispatch.sources.base import EventSource

logger = get_module_logger()


class IntakeRunner:
    """Background thread feeding events from every source into intake.

    Rejected events are logged and dropped. A StoreUnavailable stops the
    runner and is kept in ``fatal_error`` for the process to act on.
    """

    def __init__(
        self,
        intake: EventIntake,
        sources: Sequence[EventSource],
        poll_interval_seconds: float = 5.0,
        on_fatal: Optional[Callable[[StoreUnavailable], None]] = None,
    ):
        self.intake = intake
        self.sources = list(sources)
        self.poll_interval_seconds = poll_interval_seconds
        self.fatal_error: Optional[StoreUnavailable] = None
        self._stop = threading.Event()
        self.on_fatal = on_fatal
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None or not self.sources:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="intake-runner", daemon=True)
        self._thread.start()
        logger.info(
            "intake_runner_started", sources=[source.name for source in self.sources]
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("intake_runner_stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except StoreUnavailable as e:
                logger.critical("intake_store_unavailable", error=str(e), exc_info=True)
                self.fatal_error = e
                if self.on_fatal is not None:
                    self.on_fatal(e)
                return
            self._stop.wait(self.poll_interval_seconds)

    def poll_once(self) -> Dict[str, int]:
        """Poll every source once and submit what they produce.

        Returns:
            Counts of accepted, duplicate and rejected events

        Raises:
            StoreUnavailable: The store failed
        """
        stats = {"accepted": 0, "duplicate": 0, "rejected": 0}
        for source in self.sources:
            if self._stop.is_set() or self.intake.is_closed:
                break
            try:
                self._drain(source, stats)
            except StoreUnavailable:
                raise
            except IntakeClosed:
                break
            except Exception as e:  # noqa: BLE001
                logger.error(
                    "event_source_failed",
                    event_source=source.name,
                    error=str(e),
                    exc_info=True,
                )

        if stats["accepted"] or stats["rejected"]:
            logger.info("intake_poll_complete", **stats)
        return stats

    def _drain(self, source: EventSource, stats: Dict[str, int]) -> None:
        for event in source.poll():
            try:
                self.intake.submit(event)
            except DuplicateRejected:
                stats["duplicate"] += 1
            except IntakeClosed:
                raise
            except IntakeRejected as e:
                stats["rejected"] += 1
                logger.warning(
                    "event_rejected",
                    event_source=source.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
            else:
                stats["accepted"] += 1

