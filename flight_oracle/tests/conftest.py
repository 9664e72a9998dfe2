"""Shared fixtures: an in-memory stand-in for the FlightSuretyApp contract."""

import asyncio
import socket

import pytest

from flight_oracle.src.FlightSuretyContract import TransactionFailedError

ACCOUNTS = [f"0x{i:040x}" for i in range(1, 41)]
FEE = 10**18


class FakeContract:
    """Records every call the relay makes and mimics contract rejections.

    Account ``ACCOUNTS[i]`` is assigned indexes ``(i % 10, (i + 1) % 10, (i + 2) % 10)``.
    Submissions from oracles whose indexes exclude the request index are
    rejected, like the real contract does.
    """

    def __init__(
        self,
        fee: int = FEE,
        fail_register: set[str] | None = None,
        fail_indexes: set[str] | None = None,
        empty_indexes: set[str] | None = None,
        already_registered: set[str] | None = None,
        submit_delay: float = 0.0,
        hang: set[str] | None = None,
    ) -> None:
        self.fee = fee
        self.fail_register = fail_register or set()
        self.fail_indexes = fail_indexes or set()
        self.empty_indexes = empty_indexes or set()
        self.submit_delay = submit_delay
        self.hang = hang or set()

        self.fee_queries = 0
        self.register_calls: list[tuple[str, int]] = []
        self.submissions: list[tuple] = []
        self.registered: dict[str, tuple[int, ...]] = {
            account: self.indexes_for(account) for account in (already_registered or set())
        }

        self.block = 0
        self.logs: dict[str, list[tuple[int, dict]]] = {}
        self.log_queries: list[tuple[str, int, int]] = []
        self.fail_block_number = 0

    @staticmethod
    def indexes_for(account: str) -> tuple[int, ...]:
        i = ACCOUNTS.index(account)
        return (i % 10, (i + 1) % 10, (i + 2) % 10)

    async def is_operational(self) -> bool:
        return True

    async def registration_fee(self) -> int:
        self.fee_queries += 1
        return self.fee

    async def register_oracle(self, account: str, fee: int) -> dict:
        self.register_calls.append((account, fee))
        if account in self.fail_register:
            raise TransactionFailedError(b"\x01" * 32, {"status": 0})
        if fee < self.fee:
            raise ValueError("Registration fee is required")
        self.registered[account] = (
            () if account in self.empty_indexes else self.indexes_for(account)
        )
        return {"status": 1}

    async def get_my_indexes(self, account: str) -> tuple[int, ...]:
        if account in self.fail_indexes or account not in self.registered:
            raise ValueError("Not registered as an oracle")
        return self.registered[account]

    async def submit_oracle_response(self, account, request, status_code) -> dict:
        self.submissions.append((account, request, status_code))
        if account in self.hang:
            await asyncio.sleep(3600)
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        if request.request_index not in self.registered.get(account, ()):
            raise ValueError("Index does not match oracle request")
        return {"status": 1}

    def emit(self, event_name: str, args: dict) -> None:
        """Mine a block holding one event."""
        self.block += 1
        self.logs.setdefault(event_name, []).append((self.block, {"args": args}))

    async def block_number(self) -> int:
        if self.fail_block_number > 0:
            self.fail_block_number -= 1
            raise ConnectionError("socket closed")
        return self.block

    async def get_events(self, event_name: str, from_block: int, to_block: int) -> list:
        self.log_queries.append((event_name, from_block, to_block))
        return [
            event
            for block, event in self.logs.get(event_name, [])
            if from_block <= block <= to_block
        ]


@pytest.fixture
def accounts() -> list[str]:
    return list(ACCOUNTS)


@pytest.fixture
def fake_contract() -> FakeContract:
    return FakeContract()


@pytest.fixture
def make_contract():
    """Factory for fake contracts with custom failure behavior."""
    return FakeContract


@pytest.fixture
def busy_port():
    """A local port already held by a listening socket."""
    holder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    holder.bind(("127.0.0.1", 0))
    holder.listen(1)
    yield holder.getsockname()[1]
    holder.close()
