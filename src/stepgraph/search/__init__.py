"""Search orchestration - mode switching, cancellation, result paging."""

from stepgraph.search.controller import (
    ResultPage,
    SearchController,
    SearchMode,
    SearchOutcome,
    SearchState,
    SearchStatus,
    infer_mode,
)

__all__ = [
    "SearchController",
    "SearchMode",
    "SearchState",
    "SearchStatus",
    "SearchOutcome",
    "ResultPage",
    "infer_mode",
]
