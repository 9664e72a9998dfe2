#!/usr/bin/env python3
"""FlightSurety Oracle Relay.

Registers a pool of oracle accounts with the FlightSuretyApp contract and
answers every OracleRequest by submitting a status response from each
oracle in the pool.

Run against a local Ganache node with env vars or CLI flags (CLI wins).
"""

import argparse
import asyncio
import logging
import os
import sys

from .src.ContractUtility import NETWORKS, ContractUtility
from .src.EventSubscriber import DEFAULT_POLL_INTERVAL
from .src.FlightOracle import ACCOUNT_SOURCES, FlightOracle
from .src.OraclePoolManager import DEFAULT_ORACLE_COUNT, DEFAULT_ORACLE_OFFSET
from .src.ResponseRelay import DEFAULT_MAX_CONCURRENCY, DEFAULT_SUBMIT_TIMEOUT
from .src.StatusPolicy import PolicyOptions, get_available_policies
from .src.StatusRequest import StatusCode

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def env_flag(name: str) -> bool:
    """Read a boolean environment variable (1/true/yes/on)."""
    return (os.environ.get(name) or "").strip().lower() in ("1", "true", "yes", "on")


def parse_from_block(value: str | None) -> int | None:
    """Parse the starting block; ``latest`` or empty means the current block.

    :param value: Block number or "latest".
    :returns: Block number, or None for the current block.
    :raises ValueError: If the value is neither a number nor "latest".
    """
    if value is None or value.strip().lower() in ("", "latest"):
        return None
    block = int(value)
    if block < 0:
        raise ValueError("block number must not be negative")
    return block


def network_key(args: argparse.Namespace) -> str:
    """Network name used to pick the config.json entry."""
    return args.network or os.environ.get("NETWORK") or "localhost"


def resolve_endpoint(args: argparse.Namespace, config_url: str | None = None) -> str:
    """Pick the node endpoint handed to ContractUtility.

    Command line flags win over environment variables, which win over
    config.json: ``--rpc-url``, then ``--network`` (a URL, or a name when no
    config entry provides a URL), then ``RPC_URL``, then the config ``url``,
    then the ``NETWORK`` name.

    :param args: Parsed arguments.
    :param config_url: ``url`` of the config.json network entry, if any.
    :returns: Network name or RPC URL.
    """
    if args.rpc_url:
        return args.rpc_url
    if args.network and ("://" in args.network or not config_url):
        return args.network
    return os.environ.get("RPC_URL") or config_url or network_key(args)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    available_policies = get_available_policies()
    status_codes = ", ".join(code.label for code in StatusCode)

    parser = argparse.ArgumentParser(
        description="FlightSurety Oracle Relay: registers oracles and answers status requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Status policies:
  {', '.join(available_policies)}

Status codes:
  {status_codes}

Examples:
  # Ganache with unlocked accounts, 20 oracles from account 10
  python -m flight_oracle.main --app-address 0x...

  # Dapp config.json and websocket transport, as the dapp server does
  python -m flight_oracle.main --config src/server/config.json --websocket

  # Accounts derived from a mnemonic, status from an HTTP endpoint
  python -m flight_oracle.main --app-address 0x... \\
      --account-source mnemonic --mnemonic "milk flash ..." \\
      --status-policy http --status-url "https://status.local/{{airline}}/{{flight}}/{{timestamp}}"

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, CONFIG_PATH, APP_ADDRESS, ABI_PATH, WEBSOCKET,
  ACCOUNT_SOURCE, MNEMONIC, ORACLE_COUNT, ORACLE_OFFSET, STATUS_POLICY,
  STATUS_CODE, STATUS_URL, MAX_CONCURRENCY, SUBMIT_TIMEOUT, POLL_INTERVAL,
  FROM_BLOCK, API_HOST, API_PORT, REUSE_REGISTERED,
  ABORT_ON_REGISTRATION_FAILURE
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help=f"Network name ({', '.join(NETWORKS)}) or RPC URL (default: $NETWORK or localhost)",
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="Node RPC URL, overrides the network and config.json url (default: $RPC_URL)",
    )

    parser.add_argument(
        "--config",
        dest="config_path",
        type=str,
        help="Dapp config.json holding {network: {url, appAddress}}",
        default=os.environ.get("CONFIG_PATH"),
    )

    parser.add_argument(
        "--app-address",
        dest="app_address",
        type=str,
        help="Address of the FlightSuretyApp contract",
        default=os.environ.get("APP_ADDRESS"),
    )

    parser.add_argument(
        "--abi-path",
        dest="abi_path",
        type=str,
        help="ABI JSON or build artifact of FlightSuretyApp (default: bundled ABI)",
        default=os.environ.get("ABI_PATH"),
    )

    parser.add_argument(
        "--websocket",
        action="store_true",
        help="Connect over websocket (http URLs are rewritten to ws)",
        default=env_flag("WEBSOCKET"),
    )

    parser.add_argument(
        "--account-source",
        dest="account_source",
        choices=ACCOUNT_SOURCES,
        help="Where oracle accounts come from (default: node)",
        default=os.environ.get("ACCOUNT_SOURCE") or "node",
    )

    parser.add_argument(
        "--mnemonic",
        type=str,
        help="Mnemonic phrase for --account-source mnemonic",
        default=os.environ.get("MNEMONIC"),
    )

    parser.add_argument(
        "--oracle-count",
        dest="oracle_count",
        type=int,
        help=f"Number of oracles to register (default: {DEFAULT_ORACLE_COUNT})",
        default=int(os.environ.get("ORACLE_COUNT") or DEFAULT_ORACLE_COUNT),
    )

    parser.add_argument(
        "--oracle-offset",
        dest="oracle_offset",
        type=int,
        help=f"Index of the first oracle account (default: {DEFAULT_ORACLE_OFFSET})",
        default=int(os.environ.get("ORACLE_OFFSET") or DEFAULT_ORACLE_OFFSET),
    )

    parser.add_argument(
        "--status-policy",
        dest="status_policy",
        choices=available_policies,
        help="How the reported status code is chosen (default: fixed)",
        default=os.environ.get("STATUS_POLICY") or "fixed",
    )

    parser.add_argument(
        "--status-code",
        dest="status_code",
        type=str,
        help="Status reported by the fixed policy (default: late-weather)",
        default=os.environ.get("STATUS_CODE") or "late-weather",
    )

    parser.add_argument(
        "--status-url",
        dest="status_url",
        type=str,
        help="URL template for the http policy ({airline}, {flight}, {timestamp}, {index})",
        default=os.environ.get("STATUS_URL"),
    )

    parser.add_argument(
        "--max-concurrency",
        dest="max_concurrency",
        type=int,
        help=f"Max concurrent response submissions (default: {DEFAULT_MAX_CONCURRENCY})",
        default=int(os.environ.get("MAX_CONCURRENCY") or DEFAULT_MAX_CONCURRENCY),
    )

    parser.add_argument(
        "--submit-timeout",
        dest="submit_timeout",
        type=float,
        help=f"Timeout per response submission in seconds (default: {DEFAULT_SUBMIT_TIMEOUT})",
        default=float(os.environ.get("SUBMIT_TIMEOUT") or DEFAULT_SUBMIT_TIMEOUT),
    )

    parser.add_argument(
        "--poll-interval",
        dest="poll_interval",
        type=float,
        help=f"Seconds between event polls (default: {DEFAULT_POLL_INTERVAL})",
        default=float(os.environ.get("POLL_INTERVAL") or DEFAULT_POLL_INTERVAL),
    )

    parser.add_argument(
        "--from-block",
        dest="from_block",
        type=str,
        help="First block to scan for events, or 'latest' (default: latest)",
        default=os.environ.get("FROM_BLOCK") or "latest",
    )

    parser.add_argument(
        "--api-host",
        dest="api_host",
        type=str,
        help="Health API bind address (default: 0.0.0.0)",
        default=os.environ.get("API_HOST") or "0.0.0.0",
    )

    parser.add_argument(
        "--api-port",
        dest="api_port",
        type=int,
        help="Health API port, 0 to disable (default: 3000)",
        default=int(os.environ.get("API_PORT") or "3000"),
    )

    parser.add_argument(
        "--reuse-registered",
        dest="reuse_registered",
        action="store_true",
        help="Adopt accounts already registered as oracles without paying again",
        default=env_flag("REUSE_REGISTERED"),
    )

    parser.add_argument(
        "--abort-on-registration-failure",
        dest="abort_on_registration_failure",
        action="store_true",
        help="Exit if any oracle fails to register instead of skipping it",
        default=env_flag("ABORT_ON_REGISTRATION_FAILURE"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main() -> None:
    """Main entry point for the FlightSurety Oracle Relay CLI."""
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if args.oracle_count < 0:
        parser.error("--oracle-count must not be negative")

    if args.oracle_offset < 0:
        parser.error("--oracle-offset must not be negative")

    if args.max_concurrency < 1:
        parser.error("--max-concurrency must be at least 1")

    if args.submit_timeout <= 0:
        parser.error("--submit-timeout must be positive")

    if args.poll_interval <= 0:
        parser.error("--poll-interval must be positive")

    if not 0 <= args.api_port <= 65535:
        parser.error("--api-port must be between 0 and 65535")

    try:
        from_block = parse_from_block(args.from_block)
    except ValueError as e:
        parser.error(f"--from-block: {e}")

    try:
        status_code = StatusCode.parse(args.status_code)
    except ValueError as e:
        parser.error(str(e))

    if args.status_policy == "http" and not args.status_url:
        parser.error("--status-url is required for the http status policy")

    if args.account_source == "mnemonic" and not args.mnemonic:
        parser.error("--mnemonic is required for --account-source mnemonic")

    # Dapp config.json provides the node URL and contract address
    config_url = None
    app_address = args.app_address
    if args.config_path:
        try:
            entry = ContractUtility.load_network_config(args.config_path, network_key(args))
        except (OSError, ValueError) as e:
            parser.error(f"Cannot read config: {e}")
        config_url = entry.get("url")
        app_address = app_address or entry.get("appAddress")
    network = resolve_endpoint(args, config_url)

    if not app_address:
        parser.error("No FlightSuretyApp address configured (--app-address or --config)")

    policy_options = PolicyOptions(
        status_code=status_code,
        status_url=args.status_url,
    )

    # Log configuration
    logger.info("=" * 60)
    logger.info("FlightSurety Oracle Relay")
    logger.info("=" * 60)
    logger.info(f"Network:           {network}{' (websocket)' if args.websocket else ''}")
    logger.info(f"FlightSuretyApp:   {app_address}")
    logger.info(f"Accounts:          {args.account_source}")
    logger.info(f"Oracles:           {args.oracle_count} from account {args.oracle_offset}")
    logger.info(f"Status Policy:     {args.status_policy}")
    if args.status_policy == "fixed":
        logger.info(f"Status Code:       {status_code.label} ({int(status_code)})")
    logger.info(f"Max Concurrency:   {args.max_concurrency}")
    logger.info(f"Submit Timeout:    {args.submit_timeout}s")
    logger.info(f"Poll Interval:     {args.poll_interval}s")
    logger.info(f"From Block:        {from_block if from_block is not None else 'latest'}")
    logger.info(
        f"Health API:        {args.api_host}:{args.api_port}" if args.api_port else "Health API:        disabled"
    )
    logger.info("=" * 60)

    try:
        flight_oracle = FlightOracle(
            network_name=network,
            app_address=app_address,
            abi_path=args.abi_path,
            websocket=args.websocket,
            account_source=args.account_source,
            mnemonic=args.mnemonic,
            oracle_count=args.oracle_count,
            oracle_offset=args.oracle_offset,
            status_policy=args.status_policy,
            policy_options=policy_options,
            max_concurrency=args.max_concurrency,
            submit_timeout=args.submit_timeout,
            poll_interval=args.poll_interval,
            from_block=from_block,
            reuse_registered=args.reuse_registered,
            abort_on_registration_failure=args.abort_on_registration_failure,
            api_host=args.api_host,
            api_port=args.api_port or None,
        )
        asyncio.run(flight_oracle.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
