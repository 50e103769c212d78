"""Event source interface."""

from typing import Any, Dict, Iterable, Protocol


class EventSource(Protocol):
    """Produces raw events for intake.

    ``poll()`` may return a generator; the runner consumes it completely, so
    a source can finalize its own bookkeeping (for example moving a file)
    after its last event was submitted.
    """

    @property
    def name(self) -> str: ...

    def poll(self) -> Iterable[Dict[str, Any]]: ...
