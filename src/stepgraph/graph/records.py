"""Result records produced by the traversal engines.

Paths and loops share one immutable record type so that consumers never
have to guess the shape of a path element.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from stepgraph.schemas.graph import Connection, ConnectionType, Step


class PathKind(str, Enum):
    """What a step path represents."""

    PATH = "path"
    LOOP = "loop"


@dataclass(frozen=True)
class StepRef:
    """A step as it appears inside a path."""

    id: str
    name: str
    is_sub_step: bool = False

    @classmethod
    def of(cls, step: Step) -> "StepRef":
        return cls(id=step.id, name=step.label, is_sub_step=step.is_sub_step)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "isSubStep": self.is_sub_step}


@dataclass(frozen=True)
class EdgeRule:
    """The connection taken between two consecutive steps of a path."""

    type: ConnectionType
    from_id: str
    to_id: str
    from_name: str
    to_name: str
    connection_id: str

    @classmethod
    def of(cls, connection: Connection, source: Step, target: Step) -> "EdgeRule":
        return cls(
            type=connection.type,
            from_id=source.id,
            to_id=target.id,
            from_name=source.label,
            to_name=target.label,
            connection_id=connection.id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "from": self.from_name, "to": self.to_name}


@dataclass(frozen=True)
class StepPath:
    """An ordered walk through the graph.

    ``rules[i]`` is the connection taken from ``steps[i]`` to ``steps[i + 1]``.
    For loops the first and last step are the same step.
    """

    steps: tuple[StepRef, ...]
    rules: tuple[EdgeRule, ...] = field(default_factory=tuple)
    kind: PathKind = PathKind.PATH

    def __post_init__(self) -> None:
        if len(self.rules) != max(len(self.steps) - 1, 0):
            raise ValueError(
                f"A path with {len(self.steps)} steps needs {len(self.steps) - 1} rules, "
                f"got {len(self.rules)}"
            )

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def step_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.steps)

    @property
    def fingerprint(self) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Identity of the walk, distinguishing parallel connections."""
        return self.step_ids, tuple(r.connection_id for r in self.rules)

    def describe(self) -> str:
        """Render as ``A -(success)-> B -(failure)-> C``."""
        if not self.steps:
            return ""
        parts = [self.steps[0].name]
        for rule, step in zip(self.rules, self.steps[1:]):
            parts.append(f"-({rule.type.value})-> {step.name}")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "steps": [s.to_dict() for s in self.steps],
            "rules": [r.to_dict() for r in self.rules],
        }
