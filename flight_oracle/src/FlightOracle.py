"""FlightOracle: Main orchestrator for the FlightSurety oracle relay.

Startup:
    - Connect to the node and bind the FlightSuretyApp contract
    - Collect the accounts (node-unlocked or derived from a mnemonic)
    - Register the oracle pool, paying the fee once per oracle
    - Build the RelayState shared by all stream handlers

Runtime:
    - Poll the five notification streams independently
    - Answer every OracleRequest with one response per pool oracle
    - Serve the health API alongside
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .AccountProvider import AccountProvider
from .AccountProviderMnemonic import AccountProviderMnemonic
from .AccountProviderNode import AccountProviderNode
from .ContractUtility import ContractUtility
from .EventHandlers import build_handlers
from .EventSubscriber import DEFAULT_POLL_INTERVAL, EventSubscriber
from .FlightSuretyContract import FlightSuretyContract
from .HealthApi import create_app, serve_api
from .OraclePool import OraclePool
from .OraclePoolManager import (
    DEFAULT_ORACLE_COUNT,
    DEFAULT_ORACLE_OFFSET,
    OraclePoolManager,
    RegistrationError,
)
from .ResponseRelay import DEFAULT_MAX_CONCURRENCY, DEFAULT_SUBMIT_TIMEOUT, ResponseRelay
from .StatusPolicy import HttpStatusPolicy, PolicyOptions, StatusPolicyFn, get_policy

logger = logging.getLogger(__name__)

ACCOUNT_SOURCES = ("node", "mnemonic")


@dataclass
class RelayState:
    """Context built once at startup and passed to every stream handler.

    :ivar contract: FlightSuretyApp contract client.
    :ivar pool: Registered oracle pool (read-only).
    :ivar relay: Response relay answering status requests.
    """

    contract: FlightSuretyContract
    pool: OraclePool
    relay: ResponseRelay


class FlightOracle:
    """Orchestrates oracle registration, event subscription and the health API.

    :ivar network_name: Network name or RPC URL.
    :ivar app_address: FlightSuretyApp contract address.
    :ivar state: Relay context, available after :meth:`start`.
    """

    def __init__(
        self,
        network_name: str,
        app_address: str,
        abi_path: str | None = None,
        websocket: bool = False,
        account_source: str = "node",
        mnemonic: str | None = None,
        oracle_count: int = DEFAULT_ORACLE_COUNT,
        oracle_offset: int = DEFAULT_ORACLE_OFFSET,
        status_policy: str | StatusPolicyFn = "fixed",
        policy_options: PolicyOptions | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        from_block: int | None = None,
        reuse_registered: bool = False,
        abort_on_registration_failure: bool = False,
        api_host: str = "0.0.0.0",
        api_port: int | None = 3000,
    ) -> None:
        """Initialize the flight oracle.

        :param network_name: Network name (localhost, ganache, hardhat) or RPC URL.
        :param app_address: Address of the FlightSuretyApp contract.
        :param abi_path: Optional ABI or build artifact path.
        :param websocket: Connect over websocket (``http`` becomes ``ws``).
        :param account_source: "node" for unlocked node accounts or
            "mnemonic" for locally signed HD accounts.
        :param mnemonic: Mnemonic phrase, required for "mnemonic".
        :param oracle_count: Number of oracles to register (default: 20).
        :param oracle_offset: First oracle account index (default: 10).
        :param status_policy: Policy name or a custom policy callable.
        :param policy_options: Options for named policies.
        :param max_concurrency: Max concurrent submissions (default: 5).
        :param submit_timeout: Timeout per submission (default: 30.0).
        :param poll_interval: Seconds between event polls (default: 2.0).
        :param from_block: First block to scan (default: current block).
        :param reuse_registered: Reuse already registered accounts.
        :param abort_on_registration_failure: Fail startup on any failed
            registration instead of skipping the account.
        :param api_host: Health API bind address.
        :param api_port: Health API port, or None to disable the API.
        :raises ValueError: If the configuration is invalid.
        """
        if account_source not in ACCOUNT_SOURCES:
            raise ValueError(
                f"Unknown account source {account_source!r}. Available: {ACCOUNT_SOURCES}"
            )
        if account_source == "mnemonic" and not mnemonic:
            raise ValueError("A mnemonic is required for mnemonic accounts")

        self.network_name = network_name
        self.app_address = app_address
        self.account_source = account_source
        self.poll_interval = poll_interval
        self.from_block = from_block
        self.api_host = api_host
        self.api_port = api_port
        self.max_concurrency = max_concurrency
        self.submit_timeout = submit_timeout

        # Resolve the policy early so bad options fail before any fee is paid
        if isinstance(status_policy, str):
            self.policy: StatusPolicyFn = get_policy(status_policy, policy_options)
        else:
            self.policy = status_policy

        # Initialize contract utilities
        self.contract_utility = ContractUtility(network_name, websocket=websocket)
        w3 = self.contract_utility.w3
        abi = ContractUtility.get_contract(abi_path)
        self.contract = FlightSuretyContract(w3, app_address, abi)

        self.account_provider: AccountProvider
        if account_source == "mnemonic":
            self.account_provider = AccountProviderMnemonic(
                w3, mnemonic or "", oracle_offset + oracle_count
            )
        else:
            self.account_provider = AccountProviderNode(w3)

        self.pool_manager = OraclePoolManager(
            self.contract,
            oracle_count=oracle_count,
            oracle_offset=oracle_offset,
            abort_on_failure=abort_on_registration_failure,
            reuse_registered=reuse_registered,
        )

        self.state: RelayState | None = None

        logger.info(
            f"FlightOracle initialized: rpc={self.contract_utility.rpc_url}, "
            f"contract={self.contract.address}, accounts={account_source}, "
            f"oracles={oracle_count}@{oracle_offset}"
        )

    async def start(self) -> RelayState:
        """Connect, register the oracle pool and build the relay context.

        :returns: The relay context.
        :raises RegistrationError: If strict registration fails or no oracle
            could be registered at all.
        """
        await self.contract_utility.connect()

        try:
            if not await self.contract.is_operational():
                logger.warning("FlightSuretyApp reports it is not operational")
        except Exception as e:
            logger.warning(f"Could not check isOperational(): {e}")

        accounts = await self.account_provider.fetch_accounts()
        pool = await self.pool_manager.register_all(accounts)
        if self.pool_manager.oracle_count > 0 and len(pool) == 0:
            raise RegistrationError(
                None,
                f"No oracle could be registered "
                f"({len(self.pool_manager.outcomes)} accounts tried)",
            )

        relay = ResponseRelay(
            self.contract,
            pool,
            policy=self.policy,
            max_concurrency=self.max_concurrency,
            submit_timeout=self.submit_timeout,
        )
        self.state = RelayState(contract=self.contract, pool=pool, relay=relay)
        return self.state

    def _current_pool(self) -> OraclePool | None:
        return self.state.pool if self.state else None

    async def _serve_api(self) -> None:
        """Serve the health API; a bind failure disables it and keeps the relay running."""
        app = create_app(self._current_pool)
        try:
            await serve_api(app, self.api_host, self.api_port)
        except OSError as e:
            logger.warning(
                f"Health API disabled, cannot listen on "
                f"{self.api_host}:{self.api_port}: {e}"
            )

    async def run(self) -> None:
        """Run the relay until cancelled.

        The health API starts first so liveness probes succeed while the
        oracles are registering.
        """
        api_task: asyncio.Task | None = None
        if self.api_port is not None:
            api_task = asyncio.create_task(self._serve_api())

        try:
            state = await self.start()
            subscriber = EventSubscriber(
                self.contract,
                build_handlers(state),
                poll_interval=self.poll_interval,
                from_block=self.from_block,
            )
            await subscriber.run()
        finally:
            if api_task is not None:
                api_task.cancel()
                try:
                    await api_task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning(f"Health API stopped with an error: {e}")
            await HttpStatusPolicy.close_shared_client()
            await self.contract_utility.disconnect()
