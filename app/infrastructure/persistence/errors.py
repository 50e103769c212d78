"""State store errors."""

from typing import Optional


class StoreError(Exception):
    """Base class for state store errors."""


class StoreUnavailable(StoreError):
    """The backing volume or database cannot be used.

    Raised for I/O failures, a failed integrity check, use after close and
    records that cannot be decoded. The process cannot continue safely without
    its store, so callers treat this as fatal.
    """


class RecordCorrupted(StoreUnavailable):
    """A stored record failed to decode."""

    def __init__(self, key: str, detail: str):
        self.key = key
        self.detail = detail
        super().__init__(f"Corrupted record at {key!r}: {detail}")


class ConditionFailed(StoreError):
    """A write batch precondition did not hold; nothing was written."""

    def __init__(self, key: str, expected: Optional[str], actual: Optional[str]):
        self.key = key
        self.expected = expected
        self.actual = actual
        state = "absent" if expected is None else "unchanged"
        super().__init__(f"Precondition failed for {key!r}: expected record {state}")
