"""Notification dispatch pipeline.

Events from sources are validated and deduplicated by the intake, queued
durably in the state store and delivered by the worker pool through the
configured channel senders, with bounded retries and escalation of
terminal failures.

Usage:
    from modules.dispatch import DispatchService

    service = DispatchService.from_settings(get_settings())
    service.start()
    service.wait()
    service.stop()
"""

from modules.dispatch.service import DispatchService

__all__ = ["DispatchService"]
