"""AccountProvider: Abstract base class for oracle account sources."""

from abc import abstractmethod


def select_oracle_accounts(accounts: list[str], offset: int, count: int) -> list[str]:
    """Pick the contiguous block of accounts reserved for oracles.

    Accounts below ``offset`` stay reserved for the owner, airlines and
    passengers.

    :param accounts: All available account addresses.
    :param offset: Index of the first oracle account.
    :param count: Number of oracle accounts.
    :returns: ``accounts[offset:offset + count]``.
    :raises ValueError: If offset/count are negative or accounts run short.
    """
    if offset < 0 or count < 0:
        raise ValueError(f"Invalid oracle account range: offset={offset}, count={count}")
    if len(accounts) < offset + count:
        raise ValueError(
            f"Need {offset + count} accounts for {count} oracles at offset {offset}, "
            f"only {len(accounts)} available"
        )
    return accounts[offset:offset + count]


class AccountProvider:
    """Abstract base class for account provider implementations.

    Provides the list of accounts transactions can be sent from. Signing is
    either done by the node or by middleware installed on the Web3 instance.
    """

    @abstractmethod
    async def fetch_accounts(self) -> list[str]:
        """Fetch the available account addresses in a stable order.

        :returns: List of checksum addresses.
        """
        pass
