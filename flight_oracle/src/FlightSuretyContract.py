"""FlightSuretyContract: Async client for the FlightSuretyApp contract.

Wraps the four calls the relay makes plus event log queries. All methods
are awaitable and safe to call concurrently from independent tasks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from web3 import AsyncWeb3

if TYPE_CHECKING:
    from web3.types import EventData, TxReceipt

    from .StatusRequest import StatusCode, StatusRequest

logger = logging.getLogger(__name__)

# Gas limits for oracle registration and response submission.
REGISTRATION_GAS = 4712388
SUBMISSION_GAS = 999999


class ContractError(Exception):
    """Base exception for contract interaction errors."""

    pass


class TransactionFailedError(ContractError):
    """Raised when a mined transaction reports a failed status.

    :ivar tx_hash: Hash of the failed transaction.
    :ivar receipt: The transaction receipt.
    """

    def __init__(self, tx_hash: Any, receipt: Any):
        """Initialize the error.

        :param tx_hash: Transaction hash.
        :param receipt: Receipt with ``status == 0``.
        """
        self.tx_hash = tx_hash
        self.receipt = receipt
        hash_hex = tx_hash.hex() if hasattr(tx_hash, "hex") else str(tx_hash)
        super().__init__(f"Transaction {hash_hex} reverted")


class FlightSuretyContract:
    """Async wrapper around the FlightSuretyApp contract.

    :ivar w3: AsyncWeb3 instance.
    :ivar contract: Bound contract instance.
    :ivar registration_gas: Gas limit for ``registerOracle``.
    :ivar submission_gas: Gas limit for ``submitOracleResponse``.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        address: str,
        abi: list,
        registration_gas: int = REGISTRATION_GAS,
        submission_gas: int = SUBMISSION_GAS,
    ) -> None:
        """Initialize the contract client.

        :param w3: AsyncWeb3 instance.
        :param address: Deployed FlightSuretyApp address.
        :param abi: Contract ABI.
        :param registration_gas: Gas limit for oracle registration.
        :param submission_gas: Gas limit for oracle responses.
        """
        self.w3 = w3
        self.address = AsyncWeb3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=abi)
        self.registration_gas = registration_gas
        self.submission_gas = submission_gas

    async def is_operational(self) -> bool:
        return bool(await self.contract.functions.isOperational().call())

    async def registration_fee(self) -> int:
        """Query the fee required to register one oracle.

        :returns: Fee in wei.
        """
        return int(await self.contract.functions.REGISTRATION_FEE().call())

    async def register_oracle(self, account: str, fee: int) -> TxReceipt:
        """Register ``account`` as an oracle, paying exactly ``fee``.

        Not retried: a second attempt could pay the fee twice.

        :param account: Oracle account address.
        :param fee: Registration fee in wei.
        :returns: Transaction receipt.
        :raises TransactionFailedError: If the transaction reverted.
        """
        tx_hash = await self.contract.functions.registerOracle().transact(
            {"from": account, "value": fee, "gas": self.registration_gas}
        )
        return await self._wait_for_receipt(tx_hash)

    async def get_my_indexes(self, account: str) -> tuple[int, ...]:
        """Get the indexes assigned to ``account`` at registration.

        :param account: Oracle account address (used as ``msg.sender``).
        :returns: Tuple of assigned indexes.
        """
        result = await self.contract.functions.getMyIndexes().call({"from": account})
        return tuple(int(i) for i in result)

    async def submit_oracle_response(
        self,
        account: str,
        request: StatusRequest,
        status_code: StatusCode,
    ) -> TxReceipt:
        """Submit a status response on behalf of one oracle.

        :param account: Oracle account address.
        :param request: The request being answered.
        :param status_code: Reported flight status.
        :returns: Transaction receipt.
        :raises TransactionFailedError: If the transaction reverted.
        """
        tx_hash = await self.contract.functions.submitOracleResponse(
            request.request_index,
            request.airline,
            request.flight,
            request.timestamp,
            int(status_code),
        ).transact({"from": account, "gas": self.submission_gas})
        return await self._wait_for_receipt(tx_hash)

    async def block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def get_events(
        self, event_name: str, from_block: int, to_block: int
    ) -> list[EventData]:
        """Fetch decoded logs of one event over a block range (inclusive).

        :param event_name: ABI event name (e.g., "OracleRequest").
        :param from_block: First block to scan.
        :param to_block: Last block to scan.
        :returns: List of decoded events.
        """
        event = getattr(self.contract.events, event_name)
        logs = await event().get_logs(from_block=from_block, to_block=to_block)
        return list(logs)

    async def _wait_for_receipt(self, tx_hash: Any) -> TxReceipt:
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            raise TransactionFailedError(tx_hash, receipt)
        return receipt
