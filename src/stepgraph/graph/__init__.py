"""Graph algorithms - path enumeration, loop detection, point queries.

This module provides in-memory traversal over an immutable snapshot of
steps and connections, driven cooperatively on the asyncio event loop.
"""

from stepgraph.graph.loops import LoopDetector
from stepgraph.graph.model import GraphModel
from stepgraph.graph.paths import PathEnumerator
from stepgraph.graph.queries import MissingConnection, is_reachable, missing_connections, shortest_path
from stepgraph.graph.records import EdgeRule, PathKind, StepPath, StepRef
from stepgraph.graph.requests import ConnectionRequest, DuplicateRequestGuard, connection_exists
from stepgraph.graph.scheduler import CancellationToken, Pacer, TraversalDriver

__all__ = [
    # Model
    "GraphModel",
    "StepRef",
    "EdgeRule",
    "StepPath",
    "PathKind",
    # Engines
    "PathEnumerator",
    "LoopDetector",
    # Scheduling
    "CancellationToken",
    "Pacer",
    "TraversalDriver",
    # Queries
    "shortest_path",
    "is_reachable",
    "missing_connections",
    "MissingConnection",
    # Requests
    "ConnectionRequest",
    "DuplicateRequestGuard",
    "connection_exists",
]
