"""Depth-first path enumeration.

Finds every bounded path from a start step, either to any end step
(a step without outgoing connections), to a specific step, or to a
specific step through a required intermediate step.

The walk uses an explicit frame stack instead of recursion so deep
graphs cannot exhaust the interpreter stack. Discovery order is the same
as a recursive pre-order DFS that follows connections in snapshot order.
"""

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass

from stepgraph.common.config import TraversalSettings, get_settings
from stepgraph.common.exceptions import StartStepNotFoundError
from stepgraph.common.logging import LoggerMixin
from stepgraph.graph.model import GraphModel
from stepgraph.graph.records import EdgeRule, PathKind, StepPath, StepRef
from stepgraph.graph.scheduler import (
    CancellationToken,
    Pacer,
    PathFound,
    ProgressEstimator,
    ProgressTick,
    TraversalEvent,
)
from stepgraph.schemas.graph import Connection, Step


@dataclass
class _Frame:
    """One step on the current DFS path."""

    step: Step
    path: tuple[StepRef, ...]
    rules: tuple[EdgeRule, ...]
    successors: Iterator[tuple[Connection, Step]]


class PathEnumerator(LoggerMixin):
    """Enumerates paths through a step graph.

    Revisits are governed by ``max_visits_per_step``: with the default of
    1 every path is simple; 2 allows each step to appear twice in a path.
    Paths never hold more than ``total_steps * path_length_multiplier``
    steps.

    Usage:
        enumerator = PathEnumerator(graph)
        events = enumerator.walk("start", token=token, pacer=pacer)
        paths = await TraversalDriver(token).run(events)
    """

    def __init__(
        self,
        graph: GraphModel,
        settings: TraversalSettings | None = None,
    ) -> None:
        """Initialize enumerator.

        Args:
            graph: Graph to search.
            settings: Traversal settings. Uses global settings if not provided.
        """
        self._graph = graph
        self._settings = settings or get_settings().traversal

    def walk(
        self,
        start_id: str,
        end_id: str | None = None,
        intermediate_id: str | None = None,
        *,
        token: CancellationToken | None = None,
        pacer: Pacer | None = None,
    ) -> Iterator[TraversalEvent]:
        """Start a path search.

        The start step is resolved eagerly, so an unknown start fails here
        before any traversal happens.

        Args:
            start_id: Step to start from.
            end_id: Target step. When omitted, any end step is a target.
            intermediate_id: Step every reported path must pass through.
            token: Cancellation token checked at every step.
            pacer: Checkpoint clock deciding when to yield progress.

        Returns:
            Generator of traversal events.

        Raises:
            StartStepNotFoundError: If the start step does not exist.
        """
        start = self._graph.get(start_id)
        if start is None:
            raise StartStepNotFoundError(details={"start_id": start_id})

        self.logger.debug(
            "Path walk starting",
            start_id=start_id,
            end_id=end_id,
            intermediate_id=intermediate_id,
            total_steps=self._graph.total_steps,
        )

        return self._walk(
            start,
            end_id,
            intermediate_id,
            token or CancellationToken(),
            pacer or Pacer(self._settings.progress_interval_seconds),
        )

    def _is_target(
        self,
        step: Step,
        path: tuple[StepRef, ...],
        end_id: str | None,
        intermediate_id: str | None,
    ) -> bool:
        if end_id is not None:
            if step.id != end_id:
                return False
        elif not self._graph.is_end_step(step.id):
            return False

        if intermediate_id is None:
            return True
        return any(ref.id == intermediate_id for ref in path)

    def _walk(
        self,
        start: Step,
        end_id: str | None,
        intermediate_id: str | None,
        token: CancellationToken,
        pacer: Pacer,
    ) -> Iterator[TraversalEvent]:
        graph = self._graph
        max_length = graph.max_path_length(self._settings.path_length_multiplier)
        max_visits = self._settings.max_visits_per_step
        budget = graph.total_steps * 2
        progress = ProgressEstimator()

        visits: Counter[str] = Counter()
        stack: list[_Frame] = []
        processed = 0

        entering: tuple[Step, tuple[StepRef, ...], tuple[EdgeRule, ...]] | None = (start, (), ())

        while True:
            if entering is not None:
                step, prefix, rules = entering
                entering = None

                token.raise_if_cancelled()

                processed += 1
                if pacer.due():
                    yield ProgressTick(progress.update(processed / budget * 100))

                path = prefix + (StepRef.of(step),)
                visits[step.id] += 1

                if self._is_target(step, path, end_id, intermediate_id):
                    yield PathFound(StepPath(steps=path, rules=rules, kind=PathKind.PATH))

                stack.append(_Frame(
                    step=step,
                    path=path,
                    rules=rules,
                    successors=iter(graph.successors(step.id)),
                ))

            if not stack:
                break

            frame = stack[-1]
            for connection, target in frame.successors:
                if len(frame.path) >= max_length:
                    break
                if visits[target.id] >= max_visits:
                    continue
                entering = (
                    target,
                    frame.path,
                    frame.rules + (EdgeRule.of(connection, frame.step, target),),
                )
                break

            if entering is None:
                stack.pop()
                visits[frame.step.id] -= 1

        self.logger.debug("Path walk finished", processed=processed)
