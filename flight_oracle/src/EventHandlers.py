"""Handlers for the FlightSuretyApp notification streams.

Only ``OracleRequest`` drives the relay. The other streams are logged so
the operator can follow flights, status updates and payouts.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any

from .EventSubscriber import (
    FLIGHT_ADDED,
    FLIGHT_STATUS_INFO,
    ORACLE_REQUEST,
    STATUS_UPDATE,
    WITHDRAWAL,
    EventHandler,
)
from .StatusRequest import StatusRequest

if TYPE_CHECKING:
    from .FanOutReport import FanOutReport
    from .FlightOracle import RelayState

logger = logging.getLogger(__name__)


def _event_args(event: Any) -> dict:
    args = event["args"] if "args" in event else event
    return dict(args)


async def on_oracle_request(state: RelayState, event: Any) -> FanOutReport:
    """Answer an ``OracleRequest`` from every oracle in the pool.

    :param state: Relay context.
    :param event: Decoded ``OracleRequest`` event.
    :returns: Fan-out report.
    :raises ValueError: If the event payload is malformed.
    """
    request = StatusRequest.from_event_args(_event_args(event))
    return await state.relay.handle_request(request)


async def on_flight_added(state: RelayState, event: Any) -> None:
    logger.info(f"Flight added: {_event_args(event)}")


async def on_flight_status_info(state: RelayState, event: Any) -> None:
    logger.info(f"Flight status info: {_event_args(event)}")


async def on_status_update(state: RelayState, event: Any) -> None:
    logger.info(f"Flight status update: {_event_args(event)}")


async def on_withdrawal(state: RelayState, event: Any) -> None:
    logger.info(f"Withdrawal: {_event_args(event)}")


def build_handlers(state: RelayState) -> dict[str, EventHandler]:
    """Bind every stream handler to the relay context.

    :param state: Relay context shared by all handlers.
    :returns: Dict mapping stream names to handlers.
    """
    handlers = {
        ORACLE_REQUEST: on_oracle_request,
        FLIGHT_ADDED: on_flight_added,
        FLIGHT_STATUS_INFO: on_flight_status_info,
        STATUS_UPDATE: on_status_update,
        WITHDRAWAL: on_withdrawal,
    }
    return {stream: functools.partial(fn, state) for stream, fn in handlers.items()}
