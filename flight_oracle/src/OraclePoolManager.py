"""OraclePoolManager: Registers the oracle pool with the contract at startup.

Each oracle account pays the registration fee once and receives its
assigned indexes. Registration is strictly sequential and never retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .AccountProvider import select_oracle_accounts
from .OraclePool import OracleIdentity, OraclePool

if TYPE_CHECKING:
    from .FlightSuretyContract import FlightSuretyContract

logger = logging.getLogger(__name__)

DEFAULT_ORACLE_COUNT = 20
# Accounts 0..9 are left for the owner, airlines and passengers.
DEFAULT_ORACLE_OFFSET = 10


class RegistrationError(Exception):
    """Raised when an oracle cannot be registered in strict mode, or when
    no oracle of the pool could be registered.

    :ivar identifier: The account that failed to register, or None when the
        error concerns the whole pool.
    """

    def __init__(self, identifier: str | None, message: str):
        """Initialize the registration error.

        :param identifier: Account address, or None for the whole pool.
        :param message: Failure description.
        """
        self.identifier = identifier
        super().__init__(f"Oracle {identifier}: {message}" if identifier else message)


@dataclass
class RegistrationOutcome:
    """Result of registering a single oracle account.

    :ivar identifier: Account address.
    :ivar assigned_indexes: Indexes returned by the contract, empty on failure.
    :ivar error: Exception that stopped registration, if any.
    :ivar reused: True if the account was already registered and no fee was paid.
    """

    identifier: str
    assigned_indexes: tuple[int, ...] = ()
    error: Exception | None = None
    reused: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and len(self.assigned_indexes) > 0


class OraclePoolManager:
    """Brings a configured number of oracle accounts into registered state.

    :ivar contract: FlightSuretyApp contract client.
    :ivar oracle_count: Number of oracles to register.
    :ivar oracle_offset: Index of the first oracle account.
    :ivar abort_on_failure: Raise on the first failed registration instead of
        skipping the account.
    :ivar reuse_registered: Adopt accounts the contract already knows
        without paying the fee again.
    :ivar outcomes: Per-account outcomes of the last :meth:`register_all`.
    """

    def __init__(
        self,
        contract: FlightSuretyContract,
        oracle_count: int = DEFAULT_ORACLE_COUNT,
        oracle_offset: int = DEFAULT_ORACLE_OFFSET,
        abort_on_failure: bool = False,
        reuse_registered: bool = False,
    ) -> None:
        """Initialize the pool manager.

        :param contract: FlightSuretyApp contract client.
        :param oracle_count: Number of oracles to register (default: 20).
        :param oracle_offset: First oracle account index (default: 10).
        :param abort_on_failure: Fail startup on any registration error
            (default: False, failed accounts are skipped).
        :param reuse_registered: Reuse already registered accounts
            (default: False).
        :raises ValueError: If count or offset is negative.
        """
        if oracle_count < 0:
            raise ValueError("oracle_count must not be negative")
        if oracle_offset < 0:
            raise ValueError("oracle_offset must not be negative")

        self.contract = contract
        self.oracle_count = oracle_count
        self.oracle_offset = oracle_offset
        self.abort_on_failure = abort_on_failure
        self.reuse_registered = reuse_registered
        self.outcomes: list[RegistrationOutcome] = []

    async def register_all(self, accounts: list[str]) -> OraclePool:
        """Register the oracle block of ``accounts`` and build the pool.

        :param accounts: All available accounts; the oracle block is
            ``accounts[oracle_offset:oracle_offset + oracle_count]``.
        :returns: Pool of the successfully registered oracles.
        :raises ValueError: If there are not enough accounts.
        :raises RegistrationError: On failure when ``abort_on_failure`` is set.
        """
        identities = select_oracle_accounts(
            accounts, self.oracle_offset, self.oracle_count
        )
        self.outcomes = []
        if not identities:
            logger.info("No oracles configured, pool is empty")
            return OraclePool()

        fee = await self.contract.registration_fee()
        logger.info(
            f"Registering {len(identities)} oracles "
            f"(accounts {self.oracle_offset}..{self.oracle_offset + len(identities) - 1}, "
            f"fee={fee} wei)"
        )

        members: list[OracleIdentity] = []
        seen: set[str] = set()
        for identifier in identities:
            key = identifier.lower()
            if key in seen:
                logger.warning(f"Skipping duplicate oracle account {identifier}")
                continue
            seen.add(key)

            outcome = await self._register_one(identifier, fee)
            self.outcomes.append(outcome)

            if not outcome.success:
                if self.abort_on_failure:
                    raise RegistrationError(
                        identifier, f"registration failed: {outcome.error}"
                    ) from outcome.error
                logger.warning(
                    f"Oracle registration failed for {identifier}, skipping: "
                    f"{outcome.error}"
                )
                continue

            members.append(OracleIdentity(identifier, outcome.assigned_indexes))
            logger.info(
                f"Oracle {'reused' if outcome.reused else 'registered'}: {identifier}, "
                f"indexes={list(outcome.assigned_indexes)}, oracle count: {len(members)}"
            )

        pool = OraclePool(members)
        if len(pool) < len(identities):
            logger.warning(
                f"Oracle pool ready with {len(pool)}/{len(identities)} registered oracles"
            )
        else:
            logger.info(f"Oracle pool ready with {len(pool)} registered oracles")
        return pool

    async def _register_one(self, identifier: str, fee: int) -> RegistrationOutcome:
        """Register a single account and fetch its indexes.

        :param identifier: Account address.
        :param fee: Registration fee in wei, paid exactly.
        :returns: Outcome of the registration.
        """
        if self.reuse_registered:
            existing = await self._existing_indexes(identifier)
            if existing:
                return RegistrationOutcome(identifier, existing, reused=True)

        try:
            await self.contract.register_oracle(identifier, fee)
        except Exception as e:
            return RegistrationOutcome(identifier, error=e)

        try:
            indexes = await self.contract.get_my_indexes(identifier)
        except Exception as e:
            return RegistrationOutcome(identifier, error=e)

        if not indexes:
            return RegistrationOutcome(
                identifier,
                error=RegistrationError(identifier, "contract returned no indexes"),
            )
        return RegistrationOutcome(identifier, indexes)

    async def _existing_indexes(self, identifier: str) -> tuple[int, ...]:
        """Get indexes of an already registered account.

        The contract reverts ``getMyIndexes`` for unknown oracles, which is
        reported as an empty tuple.
        """
        try:
            return await self.contract.get_my_indexes(identifier)
        except Exception as e:
            logger.debug(f"{identifier} not registered yet: {e}")
            return ()
