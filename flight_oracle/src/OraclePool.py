"""OraclePool: Registered oracle identities and their assigned indexes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class OracleIdentity:
    """An account registered as an oracle with the contract.

    :ivar identifier: Account address.
    :ivar assigned_indexes: Indexes assigned by the contract at registration.
    """

    identifier: str
    assigned_indexes: tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Oracle identifier must not be empty")
        if not self.assigned_indexes:
            raise ValueError(f"Oracle {self.identifier} has no assigned indexes")

    def is_eligible(self, request_index: int) -> bool:
        """Check whether the contract would accept this oracle for an index."""
        return request_index in self.assigned_indexes


class OraclePool:
    """Ordered, read-only collection of registered oracles.

    Built once at startup and shared by concurrent fan-outs without locking.

    .. code-block:: python

        >>> pool = OraclePool([OracleIdentity("0x01", (1, 2, 3))])
        >>> len(pool)
        1
        >>> [o.identifier for o in pool.eligible_for(2)]
        ['0x01']
    """

    def __init__(self, members: Iterable[OracleIdentity] = ()) -> None:
        """Initialize the pool.

        :param members: Registered identities in enumeration order.
        :raises ValueError: If an identifier appears twice.
        """
        self._members: tuple[OracleIdentity, ...] = tuple(members)
        self._by_id: dict[str, OracleIdentity] = {}
        for member in self._members:
            key = member.identifier.lower()
            if key in self._by_id:
                raise ValueError(f"Duplicate oracle identity: {member.identifier}")
            self._by_id[key] = member

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[OracleIdentity]:
        return iter(self._members)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and identifier.lower() in self._by_id

    def get(self, identifier: str) -> OracleIdentity | None:
        """Look up an identity by address (case-insensitive)."""
        return self._by_id.get(identifier.lower())

    @property
    def identifiers(self) -> list[str]:
        return [m.identifier for m in self._members]

    def eligible_for(self, request_index: int) -> list[OracleIdentity]:
        """Get the members whose assigned indexes include ``request_index``."""
        return [m for m in self._members if m.is_eligible(request_index)]

    def to_list(self) -> list[dict]:
        """Serialize the pool for the HTTP API."""
        return [
            {"identifier": m.identifier, "indexes": list(m.assigned_indexes)}
            for m in self._members
        ]
