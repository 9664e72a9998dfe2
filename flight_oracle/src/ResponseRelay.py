"""ResponseRelay: Fans out one status request to every pool oracle.

For each inbound request the relay:
    - Asks the status policy for a single status code
    - Submits that code from every pool member, at most ``max_concurrency``
      submissions in flight at once
    - Bounds each submission with a timeout
    - Records a typed result per oracle; one rejection never stops the batch

The contract decides which responses count. Rejections from oracles whose
indexes do not match the request are routine. There is no deduplication:
delivering the same request twice produces two full fan-outs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .FanOutReport import FanOutReport, SubmissionResult
from .StatusPolicy import FixedStatusPolicy, StatusPolicyFn, resolve_status
from .StatusRequest import StatusCode, StatusRequest

if TYPE_CHECKING:
    from .FlightSuretyContract import FlightSuretyContract
    from .OraclePool import OracleIdentity, OraclePool

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_SUBMIT_TIMEOUT = 30.0


class ResponseRelay:
    """Converts status requests into per-oracle response submissions.

    :ivar contract: FlightSuretyApp contract client.
    :ivar pool: Registered oracle pool (read-only).
    :ivar policy: Status policy called once per request.
    :ivar max_concurrency: Max submissions in flight across all requests.
    :ivar submit_timeout: Timeout per submission in seconds.
    """

    def __init__(
        self,
        contract: FlightSuretyContract,
        pool: OraclePool,
        policy: StatusPolicyFn | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT,
    ) -> None:
        """Initialize the relay.

        :param contract: FlightSuretyApp contract client.
        :param pool: Registered oracle pool.
        :param policy: Status policy (default: fixed LATE_WEATHER).
        :param max_concurrency: Max concurrent submissions (default: 5).
        :param submit_timeout: Timeout per submission (default: 30.0).
        :raises ValueError: If max_concurrency < 1 or submit_timeout <= 0.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if submit_timeout <= 0:
            raise ValueError("submit_timeout must be positive")

        self.contract = contract
        self.pool = pool
        self.policy: StatusPolicyFn = policy or FixedStatusPolicy()
        self.max_concurrency = max_concurrency
        self.submit_timeout = submit_timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def handle_request(self, request: StatusRequest) -> FanOutReport:
        """Submit a response from every pool member for one request.

        :param request: The inbound status request.
        :returns: Report with one result per pool member, in pool order.
        """
        status_code = await self._determine_status(request)
        logger.info(
            f"Status request {request}: reporting {status_code.name} "
            f"from {len(self.pool)} oracles "
            f"({len(self.pool.eligible_for(request.request_index))} eligible)"
        )

        tasks = [
            self._submit_one(identity, request, status_code) for identity in self.pool
        ]
        results = await asyncio.gather(*tasks)

        report = FanOutReport(request, status_code, list(results))
        if report.succeeded == 0 and report.attempted > 0:
            logger.warning(report.summary())
        else:
            logger.info(report.summary())
        return report

    async def _determine_status(self, request: StatusRequest) -> StatusCode:
        """Run the policy, falling back to UNKNOWN if it fails."""
        try:
            return await resolve_status(self.policy, request)
        except Exception as e:
            logger.error(f"Status policy failed for {request}, reporting UNKNOWN: {e}")
            return StatusCode.UNKNOWN

    async def _submit_one(
        self,
        identity: OracleIdentity,
        request: StatusRequest,
        status_code: StatusCode,
    ) -> SubmissionResult:
        """Submit a single oracle response with timeout.

        :param identity: Submitting oracle.
        :param request: Request being answered.
        :param status_code: Status to report.
        :returns: Result of the submission, never raises for contract errors.
        """
        eligible = identity.is_eligible(request.request_index)
        async with self._semaphore:
            try:
                await asyncio.wait_for(
                    self.contract.submit_oracle_response(
                        identity.identifier, request, status_code
                    ),
                    timeout=self.submit_timeout,
                )
            except asyncio.TimeoutError as e:
                logger.warning(
                    f"Oracle {identity.identifier} timed out after "
                    f"{self.submit_timeout}s for flight {request.flight}"
                )
                return SubmissionResult(identity.identifier, False, eligible, e)
            except Exception as e:
                # The contract rejects oracles whose indexes do not match
                log = logger.info if not eligible else logger.warning
                log(
                    f"Oracle {identity.identifier} rejected for flight {request.flight}"
                    f"{'' if eligible else ' (not eligible)'}: {e}"
                )
                return SubmissionResult(identity.identifier, False, eligible, e)

        logger.info(
            f"Oracle {identity.identifier} responded with {status_code.name} "
            f"for flight {request.flight}"
        )
        return SubmissionResult(identity.identifier, True, eligible)
