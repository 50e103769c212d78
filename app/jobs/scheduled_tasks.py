"""Periodic maintenance jobs: retention purge and a queue heartbeat."""

import threading
import time

import schedule

from infrastructure.logging import get_module_logger
from modules.dispatch.queue import DispatchQueue
from modules.dispatch.retention import RetentionPolicy

logger = get_module_logger()

JOB_TAG = "notification_bot"


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            logger.error("scheduled_job_failed", job=job.__name__, error=str(e))

    return wrapper


def init(retention: RetentionPolicy, queue: DispatchQueue, purge_interval_seconds: int):
    logger.info("scheduled_tasks_initialized", purge_interval_seconds=purge_interval_seconds)

    schedule.every(purge_interval_seconds).seconds.do(
        safe_run(purge_expired_records), retention=retention
    ).tag(JOB_TAG)
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat), queue=queue).tag(JOB_TAG)


def clear():
    schedule.clear(JOB_TAG)


def scheduler_heartbeat(queue: DispatchQueue):
    logger.info("scheduler_heartbeat", queue=queue.stats())


def purge_expired_records(retention: RetentionPolicy):
    retention.purge()


def run_continuously(interval=1):
    """Run pending jobs every ``interval`` seconds on a daemon thread.

    Returns the Event that stops the thread once set. A job that fell due
    several times during one interval runs once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(name="scheduler", daemon=True)
    continuous_thread.start()
    return cease_continuous_run
