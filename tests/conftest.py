"""Pytest configuration and fixtures for StepGraph tests."""

from collections.abc import Callable

import pytest

from graph_helpers import build_snapshot
from stepgraph.common.config import Settings
from stepgraph.graph.model import GraphModel
from stepgraph.schemas.graph import GraphSnapshot

SnapshotFactory = Callable[..., GraphSnapshot]


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """Factory for graph snapshots."""
    return build_snapshot


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Settings that checkpoint on every step and publish small batches."""
    return Settings(
        environment="development",
        debug=True,
        traversal={"progress_interval_ms": 0, "batch_size": 2},
        search={"page_size": 3},
        logging={"level": "DEBUG", "format": "console"},
    )


# =============================================================================
# Sample Graph Fixtures
# =============================================================================


@pytest.fixture
def linear_snapshot() -> GraphSnapshot:
    """A -> B -> C, all success."""
    return build_snapshot(
        ["A", "B", "C"],
        [("A", "B", "success"), ("B", "C", "success")],
    )


@pytest.fixture
def branching_snapshot() -> GraphSnapshot:
    """A branches to B on success and to C on failure."""
    return build_snapshot(
        ["A", "B", "C"],
        [("A", "B", "success"), ("A", "C", "failure")],
    )


@pytest.fixture
def two_cycle_snapshot() -> GraphSnapshot:
    """A -> B on success, B -> A on failure."""
    return build_snapshot(
        ["A", "B"],
        [("A", "B", "success"), ("B", "A", "failure")],
    )


@pytest.fixture
def checkout_snapshot() -> GraphSnapshot:
    """A small checkout flow with a retry loop and a sub-step.

    login -> cart -> pay -> done
    login -> error (failure)
    pay -> retry (failure), retry -> pay (success)
    cart -> done (failure shortcut)
    """
    return build_snapshot(
        [
            {"id": "login", "name": "Login"},
            {"id": "cart", "name": "Cart"},
            {"id": "pay", "name": "Pay"},
            {"id": "retry", "name": "Retry", "parentId": "pay"},
            {"id": "done", "name": "Done"},
            {"id": "error", "name": "Error"},
        ],
        [
            ("login", "cart", "success"),
            ("login", "error", "failure"),
            ("cart", "pay", "success"),
            ("cart", "done", "failure"),
            ("pay", "done", "success"),
            ("pay", "retry", "failure"),
            ("retry", "pay", "success"),
        ],
    )


@pytest.fixture
def diamond_snapshot() -> GraphSnapshot:
    """Six diamonds in a row: 2**6 = 64 paths from s to j5."""
    steps = ["s"]
    edges = []
    previous = "s"
    for i in range(6):
        left, right, join = f"a{i}", f"b{i}", f"j{i}"
        steps.extend([left, right, join])
        edges.extend([
            (previous, left, "success"),
            (previous, right, "failure"),
            (left, join, "success"),
            (right, join, "success"),
        ])
        previous = join
    return build_snapshot(steps, edges)


@pytest.fixture
def checkout_graph(checkout_snapshot: GraphSnapshot) -> GraphModel:
    """GraphModel over the checkout flow."""
    return GraphModel(checkout_snapshot)
