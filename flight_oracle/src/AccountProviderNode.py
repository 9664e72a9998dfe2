"""AccountProviderNode: Accounts unlocked on the node (Ganache, Hardhat)."""

import logging

from web3 import AsyncWeb3

from .AccountProvider import AccountProvider

logger = logging.getLogger(__name__)


class AccountProviderNode(AccountProvider):
    """Account provider for development nodes exposing unlocked accounts.

    Transactions are signed by the node through ``eth_sendTransaction``.

    :ivar w3: AsyncWeb3 instance.
    """

    def __init__(self, w3: AsyncWeb3) -> None:
        """Initialize the node account provider.

        :param w3: AsyncWeb3 instance connected to the node.
        """
        self.w3 = w3

    async def fetch_accounts(self) -> list[str]:
        """Fetch unlocked accounts via ``eth_accounts``.

        The first account becomes the default sender for read calls.

        :returns: List of account addresses.
        """
        accounts = list(await self.w3.eth.accounts)
        if accounts:
            self.w3.eth.default_account = accounts[0]
        logger.debug("Node reports %d accounts", len(accounts))
        return accounts
