"""Duplicate connection-request filtering.

Editors can fire the same "add connection" gesture twice in quick
succession. The guard remembers the last request fingerprint and the
monotonic time it was admitted; the caller owns the guard instance and
supplies the clock reading.
"""

from dataclasses import dataclass

from stepgraph.common.config import GuardSettings, get_settings
from stepgraph.common.logging import get_logger
from stepgraph.common.metrics import DUPLICATE_REQUESTS_REJECTED
from stepgraph.schemas.graph import ConnectionType, GraphSnapshot

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConnectionRequest:
    """Fingerprint of an add-connection request."""

    from_step_id: str
    to_step_id: str
    type: ConnectionType


class DuplicateRequestGuard:
    """Rejects a repeat of the last request within a time window."""

    def __init__(
        self,
        window_seconds: float | None = None,
        settings: GuardSettings | None = None,
    ) -> None:
        """Initialize guard.

        Args:
            window_seconds: Window override in seconds.
            settings: Guard settings. Uses global settings if not provided.
        """
        if window_seconds is None:
            settings = settings or get_settings().guard
            window_seconds = settings.duplicate_window_ms / 1000
        self._window = window_seconds
        self._last: ConnectionRequest | None = None
        self._last_at = 0.0

    def admit(self, request: ConnectionRequest, now: float) -> bool:
        """Decide whether a request should be processed.

        Args:
            request: Request fingerprint.
            now: Current reading of a monotonic clock, in seconds.

        Returns:
            False when the same request was admitted less than the window ago.
        """
        if self._last == request and now - self._last_at < self._window:
            DUPLICATE_REQUESTS_REJECTED.inc()
            logger.debug(
                "Ignoring duplicate connection request",
                from_step_id=request.from_step_id,
                to_step_id=request.to_step_id,
                type=request.type.value,
            )
            return False

        self._last = request
        self._last_at = now
        return True

    def reset(self) -> None:
        self._last = None
        self._last_at = 0.0


def connection_exists(snapshot: GraphSnapshot, request: ConnectionRequest) -> bool:
    """Check whether the snapshot already holds this exact connection."""
    return any(
        c.from_step_id == request.from_step_id
        and c.to_step_id == request.to_step_id
        and c.type == request.type
        for c in snapshot.connections
    )
