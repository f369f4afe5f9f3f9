"""Loop detection scoped to selected root steps.

For each root a depth-first walk tracks the active recursion stack. An
edge leading back to a step on that stack closes a loop, reported as the
slice of the current path from that step's position to the present,
plus the step again.

Steps fully explored from an earlier root are not entered again from a
later root; within one root a popped step can be reached again through
another branch.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from stepgraph.common.config import TraversalSettings, get_settings
from stepgraph.common.exceptions import NoRootsSelectedError
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
    """One step on the active recursion stack."""

    step: Step
    path: tuple[StepRef, ...]
    rules: tuple[EdgeRule, ...]
    successors: Iterator[tuple[Connection, Step]]


class LoopDetector(LoggerMixin):
    """Finds loops reachable from a set of root steps."""

    def __init__(
        self,
        graph: GraphModel,
        settings: TraversalSettings | None = None,
    ) -> None:
        """Initialize detector.

        Args:
            graph: Graph to search.
            settings: Traversal settings. Uses global settings if not provided.
        """
        self._graph = graph
        self._settings = settings or get_settings().traversal

    def resolve_roots(self, root_ids: Sequence[str] | None) -> list[Step]:
        """Turn root ids into steps.

        ``None`` selects every root step of the graph. Unknown ids are
        skipped with a warning.

        Raises:
            NoRootsSelectedError: If an empty selection was given while the
                graph has root steps.
        """
        if root_ids is None:
            return self._graph.root_steps()

        if not root_ids:
            if self._graph.root_steps():
                raise NoRootsSelectedError()
            return []

        roots: list[Step] = []
        seen: set[str] = set()
        for root_id in root_ids:
            step = self._graph.get(root_id)
            if step is None:
                self.logger.warning("Unknown root step skipped", root_id=root_id)
                continue
            if step.id not in seen:
                seen.add(step.id)
                roots.append(step)
        return roots

    def walk(
        self,
        root_ids: Sequence[str] | None,
        *,
        token: CancellationToken | None = None,
        pacer: Pacer | None = None,
    ) -> Iterator[TraversalEvent]:
        """Start loop detection.

        Roots are resolved eagerly so selection errors surface before any
        traversal.

        Args:
            root_ids: Roots to start from, or None for all root steps.
            token: Cancellation token checked at every step.
            pacer: Checkpoint clock deciding when to yield progress.

        Returns:
            Generator of traversal events.
        """
        roots = self.resolve_roots(root_ids)

        self.logger.debug(
            "Loop walk starting",
            roots=[r.id for r in roots],
            total_steps=self._graph.total_steps,
        )

        return self._walk(
            roots,
            token or CancellationToken(),
            pacer or Pacer(self._settings.progress_interval_seconds),
        )

    def _walk(
        self,
        roots: list[Step],
        token: CancellationToken,
        pacer: Pacer,
    ) -> Iterator[TraversalEvent]:
        graph = self._graph
        max_length = graph.max_path_length(self._settings.path_length_multiplier)
        budget = max(graph.total_steps * 2, 1)
        progress = ProgressEstimator()

        explored: set[str] = set()
        reported: set[tuple[tuple[str, ...], tuple[str, ...]]] = set()
        processed = 0

        for index, root in enumerate(roots):
            if root.id in explored:
                progress.update((index + 1) / len(roots) * 100)
                continue

            reached: set[str] = set()
            on_stack: dict[str, int] = {}
            stack: list[_Frame] = []
            root_processed = 0

            entering: tuple[Step, tuple[StepRef, ...], tuple[EdgeRule, ...]] | None = (root, (), ())

            while True:
                if entering is not None:
                    step, prefix, rules = entering
                    entering = None

                    token.raise_if_cancelled()

                    processed += 1
                    root_processed += 1
                    if pacer.due():
                        share = min(root_processed / budget, 0.99)
                        yield ProgressTick(progress.update((index + share) / len(roots) * 100))

                    path = prefix + (StepRef.of(step),)
                    on_stack[step.id] = len(path) - 1
                    reached.add(step.id)
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
                    rule = EdgeRule.of(connection, frame.step, target)

                    position = on_stack.get(target.id)
                    if position is not None:
                        loop = StepPath(
                            steps=frame.path[position:] + (StepRef.of(target),),
                            rules=frame.rules[position:] + (rule,),
                            kind=PathKind.LOOP,
                        )
                        if loop.fingerprint not in reported:
                            reported.add(loop.fingerprint)
                            yield PathFound(loop)
                        continue

                    if target.id in explored or len(frame.path) >= max_length:
                        continue

                    entering = (target, frame.path, frame.rules + (rule,))
                    break

                if entering is None:
                    stack.pop()
                    del on_stack[frame.step.id]

            explored |= reached
            progress.update((index + 1) / len(roots) * 100)

        self.logger.debug("Loop walk finished", processed=processed, loops=len(reported))
