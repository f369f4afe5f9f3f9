"""Point queries over a step graph.

Cheap, synchronous helpers that complement the exhaustive engines:
shortest path, reachability and a report of steps that lack an
outgoing success or failure connection.
"""

from collections import deque
from dataclasses import dataclass

from stepgraph.graph.model import GraphModel
from stepgraph.graph.records import EdgeRule, PathKind, StepPath, StepRef
from stepgraph.schemas.graph import ConnectionType, Step


@dataclass(frozen=True)
class MissingConnection:
    """A step without an outgoing connection of some type."""

    step: StepRef
    missing: tuple[ConnectionType, ...]
    parent_name: str | None = None
    description: str | None = None

    @property
    def status(self) -> str:
        if len(self.missing) == 2:
            return "No Success or Failure outgoing connections"
        if ConnectionType.SUCCESS in self.missing:
            return "No Success outgoing connection"
        return "No Failure outgoing connection"


def shortest_path(graph: GraphModel, start_id: str, end_id: str) -> StepPath | None:
    """Find a path with the fewest connections using breadth-first search.

    Args:
        graph: Graph to search.
        start_id: Step to start from.
        end_id: Step to reach.

    Returns:
        The path, or None if either step is unknown or unreachable.
    """
    start = graph.get(start_id)
    if start is None or end_id not in graph:
        return None

    queue: deque[tuple[Step, tuple[StepRef, ...], tuple[EdgeRule, ...]]] = deque(
        [(start, (StepRef.of(start),), ())]
    )
    visited = {start.id}

    while queue:
        step, path, rules = queue.popleft()
        if step.id == end_id:
            return StepPath(steps=path, rules=rules, kind=PathKind.PATH)

        for connection, target in graph.successors(step.id):
            if target.id in visited:
                continue
            visited.add(target.id)
            queue.append((
                target,
                path + (StepRef.of(target),),
                rules + (EdgeRule.of(connection, step, target),),
            ))

    return None


def is_reachable(graph: GraphModel, from_id: str, to_id: str) -> bool:
    """Check whether one step can be reached from another."""
    return shortest_path(graph, from_id, to_id) is not None


def missing_connections(graph: GraphModel) -> list[MissingConnection]:
    """List steps missing an outgoing success and/or failure connection.

    Dangling connections still count as present: the editor drew them.
    """
    report = []
    for step in graph.snapshot.steps:
        if graph.get(step.id) is not step:
            continue
        present = {c.type for c in graph.outgoing(step.id)}
        missing = tuple(t for t in ConnectionType if t not in present)
        if not missing:
            continue
        parent = graph.get(step.parent_id)
        report.append(MissingConnection(
            step=StepRef.of(step),
            missing=missing,
            parent_name=parent.label if parent else None,
            description=step.description,
        ))
    return report
