"""
ORACLE - Price Sources

Read interface of the ledger-backed price history, plus an in-memory
implementation that mirrors the recorder contract's semantics.
"""

from typing import Protocol, runtime_checkable

from shared import (
    ComponentLogger,
    IndexOutOfRangeError,
    InsufficientDataError,
    InvalidArgumentError,
    RawRecord,
)


@runtime_checkable
class PriceSource(Protocol):
    """Read API of a price history store."""

    async def read_batch(self, count: int) -> list[RawRecord]:
        """Return the last ``count`` records, oldest first.

        Raises ``InsufficientDataError`` when fewer than ``count`` exist.
        """
        ...

    async def read_at(self, index: int) -> RawRecord:
        """Return the record at ``index``.

        Raises ``IndexOutOfRangeError`` past the end of the history.
        """
        ...


class MemoryPriceSource:
    """
    In-memory price history.

    Behaves like the recorder contract: batch reads reject requests larger
    than the history, and indexed reads fail past the end.
    """

    def __init__(self, records: list[RawRecord] | None = None):
        self.logger = ComponentLogger("ORACLE-MEMORY-SOURCE")
        self.records: list[RawRecord] = list(records or [])

    def record(self, record: RawRecord) -> int:
        """Append a record and return the new history length."""
        self.records.append(record)
        self.logger.debug("Price recorded", index=len(self.records) - 1)
        return len(self.records)

    async def read_batch(self, count: int) -> list[RawRecord]:
        if count <= 0:
            raise InvalidArgumentError("count must be positive", {"count": count})
        if count > len(self.records):
            raise InsufficientDataError(requested=count, available=len(self.records))
        return self.records[-count:]

    async def read_at(self, index: int) -> RawRecord:
        if index < 0 or index >= len(self.records):
            raise IndexOutOfRangeError(index)
        return self.records[index]

    def __len__(self) -> int:
        return len(self.records)
