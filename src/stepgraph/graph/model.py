"""Read-only graph view over a step/connection snapshot.

Built fresh for every search so lookups never go stale. Indexes are
computed once at construction: id -> step and source id -> outgoing
connections.
"""

from collections.abc import Iterable

from stepgraph.common.exceptions import StepNotFoundError
from stepgraph.common.logging import get_logger
from stepgraph.common.metrics import DANGLING_CONNECTIONS
from stepgraph.schemas.graph import Connection, GraphSnapshot, Step

logger = get_logger(__name__)


class GraphModel:
    """Lookup structure the traversal engines operate on.

    Outgoing connections keep snapshot order, which fixes the order in
    which the engines discover results.
    """

    def __init__(self, snapshot: GraphSnapshot) -> None:
        """Index the snapshot.

        Args:
            snapshot: Steps and connections to index.
        """
        self._snapshot = snapshot
        self._steps: dict[str, Step] = {}
        for step in snapshot.steps:
            # First occurrence wins on duplicate ids
            self._steps.setdefault(step.id, step)

        self._outgoing: dict[str, list[Connection]] = {}
        self._successors: dict[str, list[tuple[Connection, Step]]] = {}
        self._dangling: list[Connection] = []
        for connection in snapshot.connections:
            self._outgoing.setdefault(connection.from_step_id, []).append(connection)
            target = self._steps.get(connection.to_step_id)
            if target is None:
                self._dangling.append(connection)
                continue
            self._successors.setdefault(connection.from_step_id, []).append((connection, target))

        if self._dangling:
            DANGLING_CONNECTIONS.inc(len(self._dangling))
            logger.warning(
                "Skipping connections with missing target step",
                count=len(self._dangling),
                connection_ids=[c.id for c in self._dangling[:20]],
            )

    @classmethod
    def build(
        cls,
        steps: Iterable[Step | dict],
        connections: Iterable[Connection | dict],
    ) -> "GraphModel":
        """Build a model from raw step and connection collections."""
        return cls(GraphSnapshot.model_validate({
            "steps": list(steps),
            "connections": list(connections),
        }))

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def total_steps(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def get(self, step_id: str | None) -> Step | None:
        """Get a step by id, or None."""
        if step_id is None:
            return None
        return self._steps.get(step_id)

    def require(self, step_id: str) -> Step:
        """Get a step by id.

        Raises:
            StepNotFoundError: If no step has this id.
        """
        step = self._steps.get(step_id)
        if step is None:
            raise StepNotFoundError(
                f"Step '{step_id}' not found",
                details={"step_id": step_id},
            )
        return step

    def outgoing(self, step_id: str) -> tuple[Connection, ...]:
        """All connections leaving a step, dangling ones included."""
        return tuple(self._outgoing.get(step_id, ()))

    def successors(self, step_id: str) -> list[tuple[Connection, Step]]:
        """Outgoing connections paired with their resolved target step.

        Connections whose target does not exist are left out.
        """
        return list(self._successors.get(step_id, ()))

    def is_end_step(self, step_id: str) -> bool:
        """A step with no outgoing connections."""
        return not self._outgoing.get(step_id)

    def root_steps(self) -> list[Step]:
        """Steps without a parent, in snapshot order."""
        return [s for s in self._steps.values() if s.parent_id is None]

    def end_steps(self) -> list[Step]:
        return [s for s in self._steps.values() if self.is_end_step(s.id)]

    def dangling_connections(self) -> list[Connection]:
        return list(self._dangling)

    def max_path_length(self, multiplier: int = 2) -> int:
        """Upper bound on the number of steps in one path."""
        return self.total_steps * multiplier
