"""FanOutReport: Per-request outcome of the oracle response fan-out."""

from __future__ import annotations

from dataclasses import dataclass, field

from .StatusRequest import StatusCode, StatusRequest


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one oracle's response submission.

    :ivar identifier: Oracle account address.
    :ivar success: Whether the contract accepted the response.
    :ivar eligible: Whether the oracle's indexes include the request index.
        Rejections of ineligible oracles are expected.
    :ivar error: Exception raised by the submission, if any.
    """

    identifier: str
    success: bool
    eligible: bool = True
    error: BaseException | None = None

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


@dataclass
class FanOutReport:
    """Aggregated result of answering one status request.

    :ivar request: The request that was answered.
    :ivar status_code: Status reported by every oracle.
    :ivar results: One result per pool member, in pool order.
    """

    request: StatusRequest
    status_code: StatusCode
    results: list[SubmissionResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def failures(self) -> list[SubmissionResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        """One-line summary for logging."""
        return (
            f"{self.request}: reported {self.status_code.name} from "
            f"{self.attempted} oracles ({self.succeeded} accepted, {self.failed} rejected)"
        )
