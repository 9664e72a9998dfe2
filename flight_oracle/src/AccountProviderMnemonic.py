"""AccountProviderMnemonic: HD wallet accounts signed locally."""

import logging

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from .AccountProvider import AccountProvider

logger = logging.getLogger(__name__)

# Standard Ethereum derivation path, as used by Truffle's HDWalletProvider.
DERIVATION_PATH = "m/44'/60'/0'/0/{index}"


class AccountProviderMnemonic(AccountProvider):
    """Account provider deriving accounts from a BIP-39 mnemonic.

    Installs signing middleware so contract ``transact`` calls from any
    derived address are signed locally and sent raw.

    :ivar w3: AsyncWeb3 instance.
    :ivar accounts: Derived local accounts.
    """

    def __init__(self, w3: AsyncWeb3, mnemonic: str, num_accounts: int) -> None:
        """Initialize the mnemonic account provider.

        :param w3: AsyncWeb3 instance.
        :param mnemonic: BIP-39 mnemonic phrase.
        :param num_accounts: Number of accounts to derive (index 0 upwards).
        :raises ValueError: If the mnemonic is empty.
        """
        if not mnemonic or not mnemonic.strip():
            raise ValueError("A mnemonic is required for mnemonic accounts")

        Account.enable_unaudited_hdwallet_features()
        self.w3 = w3
        self.accounts: list[LocalAccount] = [
            Account.from_mnemonic(
                mnemonic.strip(), account_path=DERIVATION_PATH.format(index=i)
            )
            for i in range(num_accounts)
        ]
        if self.accounts:
            self.w3.middleware_onion.add(
                SignAndSendRawMiddlewareBuilder.build(self.accounts)
            )
            self.w3.eth.default_account = self.accounts[0].address
        logger.info(f"Derived {len(self.accounts)} accounts from mnemonic")

    async def fetch_accounts(self) -> list[str]:
        """Return the derived account addresses.

        :returns: List of checksum addresses.
        """
        return [account.address for account in self.accounts]
