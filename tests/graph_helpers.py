"""Builders and accessors shared by the StepGraph unit tests."""

from stepgraph.graph.records import StepPath
from stepgraph.schemas.graph import GraphSnapshot


def build_snapshot(
    steps: list[str] | list[dict],
    edges: list[tuple[str, str, str]] | None = None,
) -> GraphSnapshot:
    """Build a snapshot from step ids and (from, to, type) triples."""
    step_dicts = [
        {"id": s, "name": s} if isinstance(s, str) else s
        for s in steps
    ]
    connection_dicts = [
        {"id": f"c{i}", "fromStepId": source, "toStepId": target, "type": kind}
        for i, (source, target, kind) in enumerate(edges or [])
    ]
    return GraphSnapshot.from_dict({"steps": step_dicts, "connections": connection_dicts})


def ids(path: StepPath) -> list[str]:
    """Step ids of a path."""
    return [s.id for s in path.steps]


def types(path: StepPath) -> list[str]:
    """Connection types of a path."""
    return [r.type.value for r in path.rules]
