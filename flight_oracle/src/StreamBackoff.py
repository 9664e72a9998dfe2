"""StreamBackoff: Per-stream failure tracking with exponential backoff.

When polling a notification stream fails (RPC error, dropped socket), the
stream waits before resubscribing. The wait doubles with each consecutive
failure, up to a maximum (default 5 minutes). A successful poll resets it.

.. code-block:: python

    >>> backoff = StreamBackoff(["OracleRequest", "Withdrawal"])
    >>> backoff.record_failure("OracleRequest")
    5.0
    >>> backoff.record_failure("OracleRequest")
    10.0
    >>> backoff.record_success("OracleRequest")
    >>> backoff.get_stream_status("OracleRequest").consecutive_failures
    0
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StreamStatus:
    """Tracks the health of a single notification stream.

    :ivar consecutive_failures: Number of consecutive failed polls.
    :ivar total_failures: Total failed polls since tracking began.
    :ivar total_polls: Total successful polls since tracking began.
    :ivar last_error: Message of the most recent failure.
    """

    consecutive_failures: int = 0
    total_failures: int = 0
    total_polls: int = 0
    last_error: str | None = None


class StreamBackoff:
    """Tracks stream failures and computes resubscribe delays.

    Delays grow as ``base * 2^(failures-1)``:
        - First failure: 5 second wait
        - Second failure: 10 second wait
        - ... up to max_backoff_seconds (default 300 = 5 minutes)

    :ivar base_backoff_seconds: Wait after the first failure.
    :ivar max_backoff_seconds: Maximum wait.
    """

    DEFAULT_BASE_BACKOFF_SECONDS = 5
    DEFAULT_MAX_BACKOFF_SECONDS = 300  # 5 minutes

    def __init__(
        self,
        streams: list[str] | tuple[str, ...] = (),
        base_backoff_seconds: float = DEFAULT_BASE_BACKOFF_SECONDS,
        max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
    ) -> None:
        """Initialize the backoff tracker.

        :param streams: Stream names to track.
        :param base_backoff_seconds: Wait after the first failure.
        :param max_backoff_seconds: Maximum wait (caps exponential growth).
        """
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._status: dict[str, StreamStatus] = {s: StreamStatus() for s in streams}

    def record_failure(self, stream: str, error: BaseException | None = None) -> float:
        """Record a failed poll and compute the wait before resubscribing.

        :param stream: Stream name.
        :param error: The error that caused the failure.
        :returns: Seconds to wait before the next attempt.
        """
        status = self._status.setdefault(stream, StreamStatus())
        status.consecutive_failures += 1
        status.total_failures += 1
        if error is not None:
            status.last_error = str(error)

        return float(
            min(
                self.base_backoff_seconds * (2 ** (status.consecutive_failures - 1)),
                self.max_backoff_seconds,
            )
        )

    def record_success(self, stream: str) -> None:
        """Record a successful poll, resetting the failure counter."""
        status = self._status.setdefault(stream, StreamStatus())
        status.consecutive_failures = 0
        status.total_polls += 1

    def get_stream_status(self, stream: str) -> StreamStatus | None:
        return self._status.get(stream)

    def get_all_status(self) -> dict[str, StreamStatus]:
        return dict(self._status)

    def is_healthy(self, stream: str) -> bool:
        """Check whether the last poll of a stream succeeded."""
        status = self._status.get(stream)
        return status is not None and status.consecutive_failures == 0
