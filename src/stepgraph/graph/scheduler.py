"""Cooperative scheduling for the traversal engines.

The engines are plain generators: they walk the graph synchronously and
yield an event whenever they find a result or when the pacer says it is
time to hand control back. The async driver consumes those events,
publishes batches and progress, and suspends at every progress tick so
the event loop stays responsive.
"""

import asyncio
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from stepgraph.common.exceptions import SearchCancelledError
from stepgraph.common.logging import get_logger
from stepgraph.graph.records import StepPath

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]
BatchCallback = Callable[[tuple[StepPath, ...]], None]


class CancellationToken:
    """Single-writer stop flag shared between a controller and a search.

    Only the owner calls ``cancel()``; the traversal only reads it.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Raise SearchCancelledError once cancellation was requested."""
        if self._cancelled:
            raise SearchCancelledError()


class Pacer:
    """Time-gated checkpoint.

    ``due()`` returns True at most once per interval of wall time, as
    measured by the supplied monotonic clock.
    """

    def __init__(
        self,
        interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize pacer.

        Args:
            interval_seconds: Minimum time between checkpoints. Zero makes
                every call a checkpoint.
            clock: Monotonic clock returning seconds.
        """
        self._interval = interval_seconds
        self._clock = clock
        self._last = clock()

    def due(self) -> bool:
        now = self._clock()
        if now - self._last >= self._interval:
            self._last = now
            return True
        return False


@dataclass(frozen=True)
class ProgressTick:
    """Checkpoint carrying the current progress estimate (0-99)."""

    progress: float


@dataclass(frozen=True)
class PathFound:
    """A path or loop discovered by the traversal."""

    path: StepPath


TraversalEvent = ProgressTick | PathFound


class ProgressEstimator:
    """Keeps progress estimates monotonic and below completion."""

    CEILING = 99.0

    def __init__(self) -> None:
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    def update(self, estimate: float) -> float:
        self._value = max(self._value, min(estimate, self.CEILING))
        return self._value


class TraversalDriver:
    """Runs a traversal generator to completion on the event loop.

    Results are published as the full accumulated tuple every
    ``batch_size`` discoveries, with a final flush on completion. After
    a cancellation nothing further is published; what was published
    stays available on ``published``.
    """

    def __init__(
        self,
        token: CancellationToken,
        batch_size: int = 10,
        on_batch: BatchCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize driver.

        Args:
            token: Cancellation token of the search being driven.
            batch_size: Number of new results between publications.
            on_batch: Receives every published result tuple.
            on_progress: Receives progress values from 0 to 100.
        """
        self._token = token
        self._batch_size = batch_size
        self._on_batch = on_batch
        self._on_progress = on_progress
        self._found: list[StepPath] = []
        self._published: tuple[StepPath, ...] = ()
        self._progress = 0.0

    @property
    def published(self) -> tuple[StepPath, ...]:
        return self._published

    @property
    def found(self) -> int:
        return len(self._found)

    @property
    def progress(self) -> float:
        return self._progress

    def _report_progress(self, value: float) -> None:
        self._progress = value
        if self._on_progress is not None:
            self._on_progress(value)

    def _flush(self) -> None:
        if len(self._found) == len(self._published):
            return
        self._published = tuple(self._found)
        if self._on_batch is not None:
            self._on_batch(self._published)

    async def run(self, events: Iterator[TraversalEvent]) -> tuple[StepPath, ...]:
        """Consume traversal events until the generator is exhausted.

        Returns:
            Every result discovered, in discovery order.

        Raises:
            SearchCancelledError: If the token was cancelled.
        """
        self._report_progress(0)

        for event in events:
            self._token.raise_if_cancelled()

            if isinstance(event, ProgressTick):
                self._report_progress(event.progress)
                await asyncio.sleep(0)
                self._token.raise_if_cancelled()
                continue

            self._found.append(event.path)
            if len(self._found) % self._batch_size == 0:
                self._flush()

        # Cancelled during the last suspension with nothing left to visit
        self._token.raise_if_cancelled()

        self._flush()
        self._report_progress(100)

        logger.debug("Traversal drained", results=len(self._published))
        return self._published
