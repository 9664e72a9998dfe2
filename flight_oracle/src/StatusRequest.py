"""StatusRequest: Flight status codes and inbound oracle requests.

A status request is emitted by the FlightSuretyApp contract as an
``OracleRequest`` event. The relay turns it into one response per oracle.

.. code-block:: python

    >>> StatusCode.parse("late-weather")
    <StatusCode.LATE_WEATHER: 30>
    >>> request = StatusRequest.from_event_args(
    ...     {"index": 3, "airline": "0xA1", "flight": "AA100", "timestamp": 1690000000}
    ... )
    >>> request.request_index
    3
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class StatusCode(IntEnum):
    """Flight status codes understood by the contract."""

    UNKNOWN = 0
    ON_TIME = 10
    LATE_AIRLINE = 20
    LATE_WEATHER = 30
    LATE_TECHNICAL = 40
    LATE_OTHER = 50

    @classmethod
    def parse(cls, value: str | int) -> StatusCode:
        """Parse a status code from its number or name.

        Names are case-insensitive and accept dashes (``late-weather``).

        :param value: Integer code, numeric string or name.
        :returns: Matching status code.
        :raises ValueError: If the value matches no code.
        """
        if isinstance(value, int):
            return cls(value)

        text = value.strip()
        if text.isdigit():
            return cls(int(text))

        key = text.upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            valid = ", ".join(code.label for code in cls)
            raise ValueError(f"Unknown status code {value!r}. Valid: {valid}") from None

    @property
    def label(self) -> str:
        """CLI-friendly name, e.g. ``late-weather``."""
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class StatusRequest:
    """One inbound request for a flight status.

    Instances are immutable so each fan-out keeps its own parameters.

    :ivar request_index: Index selected by the contract for this request.
    :ivar airline: Airline address.
    :ivar flight: Flight code.
    :ivar timestamp: Flight timestamp (unix seconds).
    """

    request_index: int
    airline: str
    flight: str
    timestamp: int

    @classmethod
    def from_event_args(cls, args: Mapping[str, Any]) -> StatusRequest:
        """Build a request from decoded ``OracleRequest`` event arguments.

        :param args: Decoded event args with index, airline, flight, timestamp.
        :returns: Parsed request.
        :raises ValueError: If a field is missing or has the wrong type.
        """
        try:
            index = args["index"]
            airline = args["airline"]
            flight = args["flight"]
            timestamp = args["timestamp"]
        except KeyError as e:
            raise ValueError(f"OracleRequest payload missing field {e}") from None
        except TypeError:
            raise ValueError(f"OracleRequest payload is not a mapping: {args!r}") from None

        if not isinstance(airline, str) or not airline:
            raise ValueError(f"Invalid airline in OracleRequest: {airline!r}")
        if not isinstance(flight, str):
            raise ValueError(f"Invalid flight in OracleRequest: {flight!r}")

        try:
            return cls(
                request_index=int(index),
                airline=airline,
                flight=flight,
                timestamp=int(timestamp),
            )
        except (TypeError, ValueError):
            raise ValueError(
                f"Invalid index/timestamp in OracleRequest: {index!r}, {timestamp!r}"
            ) from None

    def __str__(self) -> str:
        return f"{self.flight} ({self.airline} @ {self.timestamp}, index {self.request_index})"
