"""ContractUtility: AsyncWeb3 initialization, network config and ABI loading."""

import json
import logging
from pathlib import Path
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3, WebSocketProvider

logger = logging.getLogger(__name__)

# Bundled subset of the FlightSuretyApp ABI used by the relay.
DEFAULT_ABI_PATH = Path(__file__).parent / "abi" / "FlightSuretyApp.json"

# Well-known local development endpoints.
NETWORKS: dict[str, str] = {
    "localhost": "http://localhost:7545",
    "ganache": "http://127.0.0.1:7545",
    "hardhat": "http://127.0.0.1:8545",
}


class ContractUtility:
    """Utility for AsyncWeb3 connection and contract ABI loading.

    :ivar rpc_url: Effective RPC URL (``ws://`` URLs use a persistent socket).
    :ivar w3: Configured AsyncWeb3 instance.
    """

    def __init__(self, network_name: str, websocket: bool = False) -> None:
        """Initialize the contract utility.

        :param network_name: Network name from :data:`NETWORKS` or a raw RPC URL.
        :param websocket: Rewrite an ``http`` URL to ``ws`` before connecting.
        """
        rpc_url = NETWORKS.get(network_name, network_name)
        if websocket and rpc_url.startswith("http"):
            rpc_url = rpc_url.replace("http", "ws", 1)
        self.rpc_url = rpc_url

        if rpc_url.startswith("ws"):
            self.w3 = AsyncWeb3(WebSocketProvider(rpc_url))
        else:
            self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))

    @property
    def is_persistent(self) -> bool:
        """Whether the provider keeps an open socket that must be connected."""
        return isinstance(self.w3.provider, WebSocketProvider)

    async def connect(self) -> None:
        """Open the provider connection and verify the node answers.

        :raises ConnectionError: If the node cannot be reached.
        """
        if self.is_persistent:
            await self.w3.provider.connect()
        if not await self.w3.is_connected():
            raise ConnectionError(f"Unable to connect to {self.rpc_url}")
        logger.info(f"Connected to {self.rpc_url}")

    async def disconnect(self) -> None:
        """Close the provider connection if it is persistent."""
        if self.is_persistent:
            await self.w3.provider.disconnect()

    @staticmethod
    def get_contract(abi_path: str | Path | None = None) -> list:
        """Load a contract ABI.

        Accepts either a bare ABI list or a build artifact (Truffle, Foundry)
        carrying the ABI under an ``abi`` key.

        :param abi_path: Path to the JSON file. Defaults to the bundled ABI.
        :returns: ABI as a list of entries.
        :raises ValueError: If the file holds no ABI.
        """
        output_path = Path(abi_path or DEFAULT_ABI_PATH).resolve()

        with open(output_path, "r") as file:
            contract_data = json.load(file)

        if isinstance(contract_data, list):
            return contract_data
        if isinstance(contract_data, dict) and isinstance(contract_data.get("abi"), list):
            return contract_data["abi"]
        raise ValueError(f"No ABI found in {output_path}")

    @staticmethod
    def load_network_config(config_path: str | Path, network_name: str) -> dict[str, Any]:
        """Read one network entry from a dapp-style ``config.json``.

        The file maps network names to ``{"url": ..., "appAddress": ...}``.

        :param config_path: Path to the JSON config file.
        :param network_name: Key of the network entry (e.g., "localhost").
        :returns: The network entry.
        :raises ValueError: If the network is missing from the file.
        """
        with open(config_path, "r") as file:
            config = json.load(file)

        entry = config.get(network_name)
        if not isinstance(entry, dict):
            raise ValueError(
                f"Network {network_name!r} not found in {config_path}. "
                f"Available: {', '.join(sorted(config))}"
            )
        return entry
