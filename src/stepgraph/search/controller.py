"""Search controller coordinating path and loop searches.

Owns the active search mode, the cancellation token of the search in
flight, and the accumulated result list that presentation layers page
through.
"""

import asyncio
import math
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from stepgraph.common.config import Settings, get_settings
from stepgraph.common.exceptions import (
    InvalidSearchError,
    SearchCancelledError,
    SearchFailedError,
    StartStepNotFoundError,
)
from stepgraph.common.logging import LoggerMixin, log_context
from stepgraph.common.metrics import (
    ACTIVE_SEARCHES,
    SEARCH_DURATION,
    SEARCH_RESULTS,
    SEARCHES_TOTAL,
)
from stepgraph.graph.loops import LoopDetector
from stepgraph.graph.model import GraphModel
from stepgraph.graph.paths import PathEnumerator
from stepgraph.graph.records import StepPath
from stepgraph.graph.scheduler import CancellationToken, Pacer, TraversalDriver, TraversalEvent
from stepgraph.schemas.graph import GraphSnapshot

if TYPE_CHECKING:
    from stepgraph.schemas.search import SearchRequest


class SearchMode(str, Enum):
    """Kind of search the controller runs."""

    END_STEPS = "end_steps"  # Paths to any step without outgoing connections
    SPECIFIC_END = "specific_end"  # Paths to one chosen step
    INTERMEDIATE_STEP = "intermediate_step"  # Paths through a required step
    LOOPS = "loops"  # Loops reachable from selected roots


class SearchState(str, Enum):
    """Lifecycle state of the controller."""

    IDLE = "idle"
    SEARCHING = "searching"


class SearchStatus(str, Enum):
    """Terminal status of a settled search."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchOutcome:
    """Settled result of one search."""

    search_id: str
    mode: SearchMode
    status: SearchStatus
    results: tuple[StepPath, ...] = ()
    progress: float = 0.0
    duration_seconds: float = 0.0
    error: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == SearchStatus.COMPLETED

    @property
    def total(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class ResultPage:
    """One page of accumulated results."""

    items: tuple[StepPath, ...]
    total: int
    page: int
    page_size: int
    pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class _ActiveSearch:
    search_id: str
    mode: SearchMode
    token: CancellationToken = field(default_factory=CancellationToken)


def infer_mode(end_id: str | None, intermediate_id: str | None) -> SearchMode:
    """Pick the path search mode implied by the chosen steps."""
    if intermediate_id:
        return SearchMode.INTERMEDIATE_STEP
    if end_id:
        return SearchMode.SPECIFIC_END
    return SearchMode.END_STEPS


class SearchController(LoggerMixin):
    """Runs one search at a time and accumulates its results.

    Starting a search stops the one in flight and waits for it to settle
    before traversing, so results of different searches never mix.
    Searches must be started from within a running event loop.

    Usage:
        controller = SearchController()
        task = controller.find_paths(snapshot, "start", end_id="done")
        outcome = await task
        first_page = controller.page(1)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        on_progress: Callable[[float], None] | None = None,
        on_results: Callable[[tuple[StepPath, ...]], None] | None = None,
    ) -> None:
        """Initialize controller.

        Args:
            settings: Application settings. Uses global settings if not provided.
            on_progress: Called with every progress update of the current search.
            on_results: Called with the accumulated results on every publication.
        """
        self._settings = settings or get_settings()
        self._on_progress = on_progress
        self._on_results = on_results

        self._mode = SearchMode.END_STEPS
        self._results: tuple[StepPath, ...] = ()
        self._progress = 0.0
        self._active: _ActiveSearch | None = None
        self._task: asyncio.Task[SearchOutcome] | None = None
        self._last_outcome: SearchOutcome | None = None

    @property
    def mode(self) -> SearchMode:
        return self._mode

    @property
    def state(self) -> SearchState:
        if self._task is not None and not self._task.done():
            return SearchState.SEARCHING
        return SearchState.IDLE

    @property
    def results(self) -> tuple[StepPath, ...]:
        return self._results

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def last_outcome(self) -> SearchOutcome | None:
        return self._last_outcome

    @property
    def page_size(self) -> int:
        return self._settings.search.page_size

    def set_mode(self, mode: SearchMode) -> None:
        """Switch the active mode.

        A change of mode stops the search in flight and clears results
        and progress.
        """
        if mode == self._mode:
            return
        self.logger.info("Search mode changed", previous=self._mode.value, mode=mode.value)
        self.cancel()
        self._active = None
        self._mode = mode
        self._reset()

    def cancel(self) -> bool:
        """Request the search in flight to stop.

        Returns:
            True if a search was running, False if idle.
        """
        if self.state != SearchState.SEARCHING or self._active is None:
            return False
        if not self._active.token.cancelled:
            self.logger.info("Cancelling search", search_id=self._active.search_id)
            self._active.token.cancel()
        return True

    def page(self, number: int = 1) -> ResultPage:
        """Get a page of the accumulated results.

        Args:
            number: 1-based page number, clamped to the available pages.
        """
        size = self.page_size
        total = len(self._results)
        pages = max(1, math.ceil(total / size))
        number = min(max(number, 1), pages)
        start = (number - 1) * size
        return ResultPage(
            items=self._results[start:start + size],
            total=total,
            page=number,
            page_size=size,
            pages=pages,
        )

    async def wait(self) -> SearchOutcome | None:
        """Wait for the current search to settle."""
        if self._task is None:
            return self._last_outcome
        return await self._task

    def find_paths(
        self,
        snapshot: GraphSnapshot,
        start_id: str,
        end_id: str | None = None,
        intermediate_id: str | None = None,
        *,
        mode: SearchMode | None = None,
    ) -> asyncio.Task[SearchOutcome]:
        """Start a path search.

        Validation happens before anything else: errors are raised here
        and no progress or results are published for a rejected call.

        Args:
            snapshot: Graph to search.
            start_id: Step to start from.
            end_id: Target step for specific-end and intermediate searches.
            intermediate_id: Step every path must pass through.
            mode: Explicit mode; inferred from the arguments when omitted.

        Returns:
            Task resolving to the search outcome.

        Raises:
            StartStepNotFoundError: If the start step does not exist.
            InvalidSearchError: If the arguments do not fit the mode.
            RuntimeError: If no event loop is running.
        """
        mode = mode or infer_mode(end_id, intermediate_id)
        self._validate_path_search(mode, end_id, intermediate_id)

        graph = GraphModel(snapshot)
        if start_id not in graph:
            raise StartStepNotFoundError(details={"start_id": start_id})

        loop = asyncio.get_running_loop()
        active = self._prepare(mode)
        events = PathEnumerator(graph, self._settings.traversal).walk(
            start_id,
            end_id if mode != SearchMode.END_STEPS else None,
            intermediate_id if mode == SearchMode.INTERMEDIATE_STEP else None,
            token=active.token,
            pacer=self._pacer(),
        )
        return self._launch(loop, active, events, start_id=start_id, end_id=end_id,
                            intermediate_id=intermediate_id)

    def detect_loops(
        self,
        snapshot: GraphSnapshot,
        root_ids: Sequence[str] | None = None,
    ) -> asyncio.Task[SearchOutcome]:
        """Start loop detection.

        Args:
            snapshot: Graph to search.
            root_ids: Roots to start from. None selects every root step.

        Returns:
            Task resolving to the search outcome.

        Raises:
            NoRootsSelectedError: If an empty selection is given while the
                graph has root steps.
            RuntimeError: If no event loop is running.
        """
        graph = GraphModel(snapshot)
        detector = LoopDetector(graph, self._settings.traversal)
        roots = detector.resolve_roots(root_ids)

        loop = asyncio.get_running_loop()
        active = self._prepare(SearchMode.LOOPS)
        events = detector.walk(
            [r.id for r in roots],
            token=active.token,
            pacer=self._pacer(),
        )
        return self._launch(loop, active, events, roots=len(roots))

    def submit(
        self,
        snapshot: GraphSnapshot,
        request: "SearchRequest",
    ) -> asyncio.Task[SearchOutcome]:
        """Start the search described by a SearchRequest."""
        if request.mode == SearchMode.LOOPS:
            return self.detect_loops(snapshot, request.root_ids)
        return self.find_paths(
            snapshot,
            request.start_id or "",
            request.end_id,
            request.intermediate_id,
            mode=request.mode,
        )

    @staticmethod
    def _validate_path_search(
        mode: SearchMode,
        end_id: str | None,
        intermediate_id: str | None,
    ) -> None:
        if mode == SearchMode.LOOPS:
            raise InvalidSearchError("Loop detection does not take a start step")
        if mode == SearchMode.SPECIFIC_END and not end_id:
            raise InvalidSearchError(
                "Choose an end step for this search",
                details={"mode": mode.value},
            )
        if mode == SearchMode.INTERMEDIATE_STEP and not intermediate_id:
            raise InvalidSearchError(
                "Choose an intermediate step for this search",
                details={"mode": mode.value},
            )

    def _pacer(self) -> Pacer:
        return Pacer(self._settings.traversal.progress_interval_seconds)

    def _reset(self) -> None:
        self._results = ()
        self._progress = 0.0

    def _prepare(self, mode: SearchMode) -> _ActiveSearch:
        """Stop the search in flight and open a new one in ``mode``."""
        self.set_mode(mode)
        self.cancel()
        self._reset()
        self._active = _ActiveSearch(search_id=uuid4().hex[:12], mode=mode)
        return self._active

    def _launch(
        self,
        loop: asyncio.AbstractEventLoop,
        active: _ActiveSearch,
        events: Iterator[TraversalEvent],
        **parameters: Any,
    ) -> asyncio.Task[SearchOutcome]:
        previous = self._task
        self._task = loop.create_task(
            self._run(active, events, previous, parameters)
        )
        return self._task

    def _is_current(self, active: _ActiveSearch) -> bool:
        return self._active is active

    def _publish_results(self, active: _ActiveSearch, results: tuple[StepPath, ...]) -> None:
        if not self._is_current(active):
            return
        self._results = results
        if self._on_results is not None:
            self._on_results(results)

    def _publish_progress(self, active: _ActiveSearch, value: float) -> None:
        if not self._is_current(active):
            return
        self._progress = value
        if self._on_progress is not None:
            self._on_progress(value)

    async def _run(
        self,
        active: _ActiveSearch,
        events: Iterator[TraversalEvent],
        previous: asyncio.Task[SearchOutcome] | None,
        parameters: dict[str, Any],
    ) -> SearchOutcome:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        mode = active.mode
        driver = TraversalDriver(
            active.token,
            batch_size=self._settings.traversal.batch_size,
            on_batch=lambda results: self._publish_results(active, results),
            on_progress=lambda value: self._publish_progress(active, value),
        )

        with log_context(search_id=active.search_id, mode=mode.value):
            self.logger.info("Search started", **parameters)
            ACTIVE_SEARCHES.inc()
            started = time.perf_counter()

            error: str | None = None
            error_code: str | None = None
            try:
                results = await driver.run(events)
                status = SearchStatus.COMPLETED
            except SearchCancelledError:
                results = driver.published
                status = SearchStatus.CANCELLED
            except Exception as e:
                failure = SearchFailedError(cause=e)
                self.logger.exception(
                    "Search failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results = driver.published
                status = SearchStatus.FAILED
                error = failure.message
                error_code = failure.error_code
            finally:
                ACTIVE_SEARCHES.dec()

            duration = time.perf_counter() - started
            outcome = SearchOutcome(
                search_id=active.search_id,
                mode=mode,
                status=status,
                results=results,
                progress=driver.progress,
                duration_seconds=duration,
                error=error,
                error_code=error_code,
            )

            SEARCHES_TOTAL.labels(mode=mode.value, status=status.value).inc()
            SEARCH_DURATION.labels(mode=mode.value).observe(duration)
            SEARCH_RESULTS.observe(len(results))

            log = self.logger.warning if status == SearchStatus.FAILED else self.logger.info
            log(
                "Search settled",
                status=status.value,
                results=len(results),
                duration=round(duration, 3),
                found=driver.found,
            )

        if self._is_current(active):
            self._last_outcome = outcome
            if status != SearchStatus.COMPLETED:
                self._progress = 0.0
        return outcome
