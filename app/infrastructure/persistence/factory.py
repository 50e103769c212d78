"""Factory for creating the state store based on configuration."""

from typing import Optional

from infrastructure.configuration.infrastructure.store import StoreSettings
from infrastructure.logging import get_module_logger
from infrastructure.persistence.memory import InMemoryStateStore
from infrastructure.persistence.sqlite import SQLiteStateStore
from infrastructure.persistence.store import StateStore

logger = get_module_logger()


def create_state_store(
    settings: StoreSettings, backend: Optional[str] = None
) -> StateStore:
    """Create the state store selected by configuration.

    Args:
        settings: Store settings (backend, data directory, file name)
        backend: Optional backend override (sqlite, memory)

    Returns:
        Appropriate StateStore implementation

    Raises:
        ValueError: If unknown backend specified
        StoreUnavailable: If the SQLite database cannot be opened

    Examples:
        >>> store = create_state_store(settings.store)  # Uses STORE_BACKEND
        >>> store = create_state_store(settings.store, backend="memory")
    """
    backend = backend or settings.backend

    if backend == "memory":
        logger.warning("creating_in_memory_state_store", durable=False)
        return InMemoryStateStore()

    elif backend == "sqlite":
        logger.info("creating_sqlite_state_store", path=settings.path)
        return SQLiteStateStore(settings.path)

    else:
        raise ValueError(f"Unknown store backend: {backend}. Supported: sqlite, memory")
