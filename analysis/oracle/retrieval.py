"""
ORACLE - Price History Retrieval

Fetches the most recent observations from a price source whose batch read
rejects requests larger than the recorded history.

Each attempt runs a small state machine:

    TRY_BATCH -> PROBE_EXISTENCE -> BOUNDED_BATCH -> MANUAL_READ

and every stage yields ``Success``, ``Insufficient`` or ``Exhausted``.
Transient outcomes move to RETRY, which sleeps and starts over until the
retry budget is spent (FAILED).
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from shared import (
    ComponentLogger,
    IndexOutOfRangeError,
    InsufficientDataError,
    InvalidArgumentError,
    NoDataAvailableError,
    Observation,
    RetrievalExhaustedError,
    SourceError,
)
from shared.config import RetrievalConfig

from .normalizer import normalize_record, normalize_records
from .source import PriceSource


class RetrievalState(str, Enum):
    """States of the retrieval state machine."""
    TRY_BATCH = "try_batch"
    PROBE_EXISTENCE = "probe_existence"
    BOUNDED_BATCH = "bounded_batch"
    MANUAL_READ = "manual_read"
    RETRY = "retry"
    FAILED = "failed"


@dataclass(frozen=True)
class Success:
    observations: list[Observation]


@dataclass(frozen=True)
class Insufficient:
    """The source holds fewer records than asked for (possibly none)."""
    reason: str


@dataclass(frozen=True)
class Exhausted:
    """A transient failure ended the stage."""
    cause: SourceError


StageOutcome = Union[Success, Insufficient, Exhausted]


class PriceHistoryRetriever:
    """
    Layered retrieval with bounded retry.

    The batch primitive is tried first. When it refuses, the history length
    is discovered by probing indices from 0, then the batch is retried with
    the bounded count and, failing that, records are read one by one.
    """

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay_s: float = 2.0,
        batch_ceiling: int = 20,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.logger = ComponentLogger("ORACLE-RETRIEVAL")
        self.max_retries = max_retries
        self.retry_delay_s = retry_delay_s
        self.batch_ceiling = batch_ceiling
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: RetrievalConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "PriceHistoryRetriever":
        return cls(
            max_retries=config.max_retries,
            retry_delay_s=config.retry_delay_s,
            batch_ceiling=config.batch_ceiling,
            sleep=sleep,
        )

    async def fetch_recent(self, source: PriceSource, n: int) -> list[Observation]:
        """Return up to ``n`` most recent observations."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise InvalidArgumentError("n must be a positive integer", {"n": n})

        initial = (
            RetrievalState.TRY_BATCH
            if n <= self.batch_ceiling
            else RetrievalState.PROBE_EXISTENCE
        )
        state = initial
        attempt = 1
        history_length = 0
        actual_n = n
        last: StageOutcome | None = None

        while True:
            if state is RetrievalState.TRY_BATCH:
                outcome = await self._read_batch(source, n)
                if isinstance(outcome, Success):
                    return outcome.observations
                self.logger.debug("Direct batch read refused", requested=n, outcome=outcome)
                state = RetrievalState.PROBE_EXISTENCE

            elif state is RetrievalState.PROBE_EXISTENCE:
                probed = await self._probe_length(source)
                if isinstance(probed, int):
                    history_length = probed
                    actual_n = min(history_length, n)
                    self.logger.info(
                        "History length discovered",
                        history_length=history_length,
                        fetching=actual_n,
                    )
                    state = RetrievalState.BOUNDED_BATCH
                else:
                    last = probed
                    state = RetrievalState.RETRY

            elif state is RetrievalState.BOUNDED_BATCH:
                outcome = await self._read_batch(source, actual_n)
                if isinstance(outcome, Success):
                    return outcome.observations
                self.logger.warning(
                    "Batch read failed despite available entries",
                    requested=actual_n,
                    history_length=history_length,
                )
                state = RetrievalState.MANUAL_READ

            elif state is RetrievalState.MANUAL_READ:
                outcome = await self._read_manual(
                    source, history_length - actual_n, history_length
                )
                if isinstance(outcome, Success):
                    return outcome.observations
                last = outcome
                state = RetrievalState.RETRY

            elif state is RetrievalState.RETRY:
                if attempt > self.max_retries:
                    state = RetrievalState.FAILED
                    continue
                self.logger.info(
                    "Retrieval attempt failed, retrying",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    delay_s=self.retry_delay_s,
                    reason=_describe(last),
                )
                await self.sleep(self.retry_delay_s)
                attempt += 1
                state = initial

            else:
                self.logger.error(
                    "Retrieval exhausted",
                    attempts=attempt,
                    reason=_describe(last),
                )
                if isinstance(last, Exhausted):
                    raise RetrievalExhaustedError(
                        f"Unable to fetch historical prices after {attempt} attempts",
                        cause=last.cause,
                        details={"attempts": attempt, "requested": n},
                    ) from last.cause
                raise NoDataAvailableError(
                    "No prices have been recorded in the source",
                    {"attempts": attempt, "requested": n},
                )

    async def has_history(self, source: PriceSource) -> bool:
        """Check whether at least one record exists."""
        try:
            await source.read_at(0)
        except (IndexOutOfRangeError, InsufficientDataError):
            return False
        return True

    async def fetch_latest(self, source: PriceSource) -> Observation:
        """Return the most recent observation."""
        observations = await self.fetch_recent(source, 1)
        return observations[-1]

    async def _read_batch(self, source: PriceSource, count: int) -> StageOutcome:
        try:
            records = await source.read_batch(count)
        except SourceError as e:
            if not e.transient:
                raise
            if isinstance(e, (InsufficientDataError, IndexOutOfRangeError)):
                return Insufficient(str(e))
            return Exhausted(e)

        if not records:
            return Insufficient("batch read returned no records")
        # Never hand back more than requested
        return Success(normalize_records(list(records))[-count:])

    async def _probe_length(self, source: PriceSource) -> int | Insufficient | Exhausted:
        """Count records by reading indices until one is out of range."""
        try:
            await source.read_at(0)
        except (IndexOutOfRangeError, InsufficientDataError):
            return Insufficient("no records at index 0")
        except SourceError as e:
            if not e.transient:
                raise
            return Exhausted(e)

        length = 1
        while True:
            try:
                await source.read_at(length)
            except IndexOutOfRangeError:
                return length
            except SourceError as e:
                if not e.transient:
                    raise
                return Exhausted(e)
            length += 1

    async def _read_manual(self, source: PriceSource, start: int, stop: int) -> StageOutcome:
        self.logger.info("Reading entries one by one", start=start, stop=stop)
        observations = []
        for index in range(max(0, start), stop):
            try:
                record = await source.read_at(index)
            except SourceError as e:
                if not e.transient:
                    raise
                return Exhausted(e)
            observations.append(normalize_record(record))
        return Success(observations)


def _describe(outcome: StageOutcome | None) -> str:
    if isinstance(outcome, Exhausted):
        return str(outcome.cause)
    if isinstance(outcome, Insufficient):
        return outcome.reason
    return "unknown"


async def fetch_recent(
    source: PriceSource,
    n: int,
    retriever: PriceHistoryRetriever | None = None,
) -> list[Observation]:
    """Fetch up to ``n`` recent observations with the default retriever."""
    retriever = retriever or PriceHistoryRetriever()
    return await retriever.fetch_recent(source, n)
