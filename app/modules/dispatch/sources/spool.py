"""Spool directory source: JSON event files dropped into an inbox."""

import json
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Iterator, List

from infrastructure.logging import get_module_logger

logger = get_module_logger()


class SpoolDirectorySource:
    """Reads ``*.json`` files from ``<root>/inbox`` in name order.

    A file holds one event object or a list of them. Files are moved to
    ``processed/`` once all their events were handed to intake and to
    ``rejected/`` when they cannot be parsed. A file left behind by a crash
    is read again on the next poll; deduplication suppresses the repeats.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.inbox = self.root / "inbox"
        self.processed = self.root / "processed"
        self.rejected = self.root / "rejected"
        for directory in (self.inbox, self.processed, self.rejected):
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "spool"

    def poll(self) -> Iterator[Dict[str, Any]]:
        for path in sorted(self.inbox.glob("*.json")):
            try:
                events = self._read(path)
            except (OSError, ValueError) as e:
                logger.warning("spool_file_rejected", file=path.name, error=str(e))
                self._move(path, self.rejected)
                continue

            yield from events
            self._move(path, self.processed)
            logger.info("spool_file_processed", file=path.name, events=len(events))

    @staticmethod
    def _read(path: Path) -> List[Dict[str, Any]]:
        with path.open(encoding="utf-8") as handle:
            document = json.load(handle)
        events = document if isinstance(document, list) else [document]
        if not all(isinstance(event, dict) for event in events):
            raise ValueError("spool file must hold an event object or a list of them")
        return events

    @staticmethod
    def _move(path: Path, directory: Path) -> None:
        target = directory / path.name
        if target.exists():
            target = directory / f"{path.stem}-{os.getpid()}-{path.stat().st_mtime_ns}{path.suffix}"
        shutil.move(str(path), str(target))
