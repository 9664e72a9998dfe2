"""
FlightSurety Oracle Relay

This module registers oracle accounts and relays their status responses:
- OraclePool: Registered oracle identities and assigned indexes
- OraclePoolManager: Fee-paying registration of the pool at startup
- ResponseRelay: Per-request fan-out of responses from every oracle
- StatusPolicy: Pluggable choice of the reported status code
- EventSubscriber: Independent polling of the contract's notification streams
- FlightOracle: Main orchestrator and relay context
"""

from .EventSubscriber import STREAMS, EventSubscriber
from .FanOutReport import FanOutReport, SubmissionResult
from .FlightOracle import FlightOracle, RelayState
from .FlightSuretyContract import ContractError, FlightSuretyContract, TransactionFailedError
from .OraclePool import OracleIdentity, OraclePool
from .OraclePoolManager import OraclePoolManager, RegistrationError
from .ResponseRelay import ResponseRelay
from .StatusPolicy import PolicyOptions, get_available_policies, get_policy
from .StatusRequest import StatusCode, StatusRequest
from .StreamBackoff import StreamBackoff, StreamStatus

__all__ = [
    "ContractError",
    "EventSubscriber",
    "FanOutReport",
    "FlightOracle",
    "FlightSuretyContract",
    "OracleIdentity",
    "OraclePool",
    "OraclePoolManager",
    "PolicyOptions",
    "RegistrationError",
    "RelayState",
    "ResponseRelay",
    "STREAMS",
    "StatusCode",
    "StatusRequest",
    "StreamBackoff",
    "StreamStatus",
    "SubmissionResult",
    "TransactionFailedError",
    "get_available_policies",
    "get_policy",
]
