"""Unit tests for depth-first path enumeration."""

import pytest

from graph_helpers import ids, types
from stepgraph.common.config import TraversalSettings
from stepgraph.common.exceptions import SearchCancelledError, StartStepNotFoundError
from stepgraph.graph.model import GraphModel
from stepgraph.graph.paths import PathEnumerator
from stepgraph.graph.records import PathKind, StepPath
from stepgraph.graph.scheduler import CancellationToken, Pacer, PathFound, ProgressTick
from stepgraph.schemas.graph import GraphSnapshot


def find(
    snapshot: GraphSnapshot,
    start_id: str,
    end_id: str | None = None,
    intermediate_id: str | None = None,
    **settings,
) -> list[StepPath]:
    """Run a walk synchronously and collect the paths."""
    enumerator = PathEnumerator(GraphModel(snapshot), TraversalSettings(**settings))
    events = enumerator.walk(start_id, end_id, intermediate_id, pacer=Pacer(3600))
    return [e.path for e in events if isinstance(e, PathFound)]


def assert_valid_path(snapshot: GraphSnapshot, path: StepPath) -> None:
    """Every rule must correspond to a real connection of that type."""
    assert len(path.rules) == len(path.steps) - 1
    edges = {(c.from_step_id, c.to_step_id, c.type) for c in snapshot.connections}
    for i, rule in enumerate(path.rules):
        assert (path.steps[i].id, path.steps[i + 1].id, rule.type) in edges


@pytest.mark.unit
class TestPathEnumerator:
    """Test cases for PathEnumerator."""

    def test_linear_any_end(self, linear_snapshot: GraphSnapshot):
        """Test a chain yields exactly one path to its end."""
        paths = find(linear_snapshot, "A")

        assert len(paths) == 1
        assert ids(paths[0]) == ["A", "B", "C"]
        assert types(paths[0]) == ["success", "success"]
        assert paths[0].kind == PathKind.PATH

    def test_specific_end(self, branching_snapshot: GraphSnapshot):
        """Test paths to a specific step."""
        to_b = find(branching_snapshot, "A", "B")
        to_c = find(branching_snapshot, "A", "C")

        assert [ids(p) for p in to_b] == [["A", "B"]]
        assert types(to_b[0]) == ["success"]
        assert [ids(p) for p in to_c] == [["A", "C"]]
        assert types(to_c[0]) == ["failure"]

    def test_unknown_end_gives_no_paths(self, make_snapshot):
        """Test an unknown end step is not an error."""
        snapshot = make_snapshot(["A", "B"], [("A", "B", "success")])

        assert find(snapshot, "A", "nonexistent-id") == []

    def test_unknown_start_fails_before_traversal(self, linear_snapshot: GraphSnapshot):
        """Test the start step is resolved eagerly."""
        enumerator = PathEnumerator(GraphModel(linear_snapshot))

        with pytest.raises(StartStepNotFoundError) as exc_info:
            enumerator.walk("missing-id")

        assert exc_info.value.error_code == "START_STEP_NOT_FOUND"

    def test_discovery_order_follows_dfs(self, checkout_snapshot: GraphSnapshot):
        """Test paths come out in depth-first, snapshot order."""
        paths = find(checkout_snapshot, "login")

        assert [ids(p) for p in paths] == [
            ["login", "cart", "pay", "done"],
            ["login", "cart", "done"],
            ["login", "error"],
        ]

    def test_any_end_paths_finish_on_end_steps(self, checkout_snapshot: GraphSnapshot):
        """Test every any-end path ends at a step without outgoing edges."""
        graph = GraphModel(checkout_snapshot)

        for path in find(checkout_snapshot, "login"):
            assert graph.outgoing(path.steps[-1].id) == ()
            assert_valid_path(checkout_snapshot, path)

    def test_intermediate_step(self, checkout_snapshot: GraphSnapshot):
        """Test paths must pass through the intermediate step."""
        paths = find(checkout_snapshot, "login", "done", "pay")

        assert [ids(p) for p in paths] == [["login", "cart", "pay", "done"]]

    def test_intermediate_without_end(self, checkout_snapshot: GraphSnapshot):
        """Test intermediate filter also applies to any-end searches."""
        paths = find(checkout_snapshot, "login", None, "error")

        assert [ids(p) for p in paths] == [["login", "error"]]

    def test_start_is_end_step(self, make_snapshot):
        """Test a start without outgoing edges is a one-step path."""
        paths = find(make_snapshot(["A"]), "A")

        assert [ids(p) for p in paths] == [["A"]]
        assert paths[0].rules == ()

    def test_strict_policy_forbids_revisits(self, checkout_snapshot: GraphSnapshot):
        """Test no step appears twice in a path by default."""
        for path in find(checkout_snapshot, "login", "done"):
            assert len(set(ids(path))) == len(path.steps)

    def test_revisit_once_policy(self, checkout_snapshot: GraphSnapshot):
        """Test allowing a second visit adds paths through the retry loop."""
        paths = find(checkout_snapshot, "login", max_visits_per_step=2)

        assert ["login", "cart", "pay", "retry", "pay", "done"] in [ids(p) for p in paths]
        assert len(paths) == 4
        for path in paths:
            assert_valid_path(checkout_snapshot, path)

    def test_path_length_cap(self, make_snapshot):
        """Test no path exceeds the configured length even with revisits."""
        snapshot = make_snapshot(
            ["A", "B", "C"],
            [
                ("A", "B", "success"), ("B", "A", "failure"),
                ("B", "C", "success"), ("C", "B", "failure"),
                ("C", "A", "success"), ("A", "C", "failure"),
            ],
        )

        paths = find(snapshot, "A", "C", max_visits_per_step=2)

        assert paths
        assert all(len(p.steps) <= 2 * 3 for p in paths)

        short = find(snapshot, "A", "C", max_visits_per_step=2, path_length_multiplier=1)
        assert all(len(p.steps) <= 3 for p in short)
        assert len(short) < len(paths)

    def test_parallel_connections_are_distinct_paths(self, make_snapshot):
        """Test success and failure edges to the same step give two paths."""
        snapshot = make_snapshot(["A", "B"], [("A", "B", "success"), ("A", "B", "failure")])

        paths = find(snapshot, "A")

        assert [types(p) for p in paths] == [["success"], ["failure"]]

    def test_dangling_connection_is_skipped(self, make_snapshot):
        """Test a connection to a missing step does not break the search."""
        snapshot = make_snapshot(
            ["A", "B"],
            [("A", "ghost", "success"), ("A", "B", "failure")],
        )

        paths = find(snapshot, "A")

        assert [ids(p) for p in paths] == [["A", "B"]]

    def test_sub_step_flag(self, checkout_snapshot: GraphSnapshot):
        """Test sub-steps are flagged in path records."""
        paths = find(checkout_snapshot, "login", "retry")

        assert paths[0].steps[-1].is_sub_step is True
        assert paths[0].steps[0].is_sub_step is False

    def test_many_paths(self, diamond_snapshot: GraphSnapshot):
        """Test every combination through a diamond chain is found."""
        paths = find(diamond_snapshot, "s")

        assert len(paths) == 64
        assert len({p.fingerprint for p in paths}) == 64
        assert all(ids(p)[-1] == "j5" for p in paths)

    def test_deterministic(self, diamond_snapshot: GraphSnapshot):
        """Test repeated searches find the same paths."""
        first = [p.fingerprint for p in find(diamond_snapshot, "s", "j3")]
        second = [p.fingerprint for p in find(diamond_snapshot, "s", "j3")]

        assert first == second
        assert len(first) == 16

    def test_deep_chain_does_not_recurse(self, make_snapshot):
        """Test long chains beyond the interpreter recursion limit."""
        count = 3000
        steps = [f"s{i}" for i in range(count)]
        edges = [(f"s{i}", f"s{i + 1}", "success") for i in range(count - 1)]

        paths = find(make_snapshot(steps, edges), "s0")

        assert len(paths) == 1
        assert len(paths[0].steps) == count


@pytest.mark.unit
class TestPathWalkScheduling:
    """Test cases for progress ticks and cancellation inside the walk."""

    def test_ticks_when_pacer_due(self, linear_snapshot: GraphSnapshot):
        """Test a zero interval produces a tick per step."""
        enumerator = PathEnumerator(GraphModel(linear_snapshot))
        events = list(enumerator.walk("A", pacer=Pacer(0)))

        ticks = [e.progress for e in events if isinstance(e, ProgressTick)]
        assert len(ticks) == 3
        assert ticks == sorted(ticks)
        assert all(0 <= t <= 99 for t in ticks)

    def test_time_gated_ticks(self, linear_snapshot: GraphSnapshot):
        """Test ticks only happen once the interval has elapsed."""
        readings = iter([0.0, 0.05, 0.2, 0.25])
        pacer = Pacer(0.1, clock=lambda: next(readings))
        enumerator = PathEnumerator(GraphModel(linear_snapshot))

        events = list(enumerator.walk("A", pacer=pacer))

        assert sum(isinstance(e, ProgressTick) for e in events) == 1

    def test_cancelled_token_stops_walk(self, diamond_snapshot: GraphSnapshot):
        """Test cancellation raises out of the walk."""
        token = CancellationToken()
        enumerator = PathEnumerator(GraphModel(diamond_snapshot))
        events = enumerator.walk("s", token=token, pacer=Pacer(3600))

        found = []
        with pytest.raises(SearchCancelledError):
            for event in events:
                found.append(event)
                if len(found) == 5:
                    token.cancel()

        assert len(found) == 5
