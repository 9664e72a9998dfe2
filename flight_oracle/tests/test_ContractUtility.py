"""Unit tests for ContractUtility."""

import json

import pytest
from web3 import AsyncHTTPProvider, WebSocketProvider

from flight_oracle.src.ContractUtility import ContractUtility


class TestContractUtilityProvider:
    """Test provider selection."""

    def test_named_network(self, monkeypatch) -> None:
        monkeypatch.delenv("RPC_URL", raising=False)
        utility = ContractUtility("localhost")
        assert utility.rpc_url == "http://localhost:7545"
        assert isinstance(utility.w3.provider, AsyncHTTPProvider)
        assert not utility.is_persistent

    def test_raw_url(self, monkeypatch) -> None:
        monkeypatch.delenv("RPC_URL", raising=False)
        utility = ContractUtility("http://10.0.0.5:8545")
        assert utility.rpc_url == "http://10.0.0.5:8545"

    def test_websocket_rewrite(self, monkeypatch) -> None:
        """--websocket turns the http URL into ws, as the dapp server does."""
        monkeypatch.delenv("RPC_URL", raising=False)
        utility = ContractUtility("localhost", websocket=True)
        assert utility.rpc_url == "ws://localhost:7545"
        assert isinstance(utility.w3.provider, WebSocketProvider)
        assert utility.is_persistent

    def test_explicit_url_ignores_env(self, monkeypatch) -> None:
        """The endpoint is chosen by the caller, never by RPC_URL."""
        monkeypatch.setenv("RPC_URL", "http://env-node:8545")
        utility = ContractUtility("http://cli-node:7545")
        assert utility.rpc_url == "http://cli-node:7545"


class TestContractUtilityAbi:
    """Test ABI loading."""

    def test_bundled_abi(self) -> None:
        """The bundled ABI exposes every call and event the relay uses."""
        abi = ContractUtility.get_contract()
        names = {entry.get("name") for entry in abi}
        assert {
            "REGISTRATION_FEE",
            "registerOracle",
            "getMyIndexes",
            "submitOracleResponse",
            "isOperational",
            "OracleRequest",
            "FlightAdded",
            "FlightStatusInfo",
            "StatusUpdate",
            "Withdrawal",
        } <= names

    def test_bundled_abi_functions(self) -> None:
        """Only functions the relay calls are bundled."""
        abi = ContractUtility.get_contract()
        functions = {entry["name"] for entry in abi if entry.get("type") == "function"}
        assert functions == {
            "REGISTRATION_FEE",
            "isOperational",
            "registerOracle",
            "getMyIndexes",
            "submitOracleResponse",
        }

    def test_truffle_artifact(self, tmp_path) -> None:
        path = tmp_path / "FlightSuretyApp.json"
        path.write_text(json.dumps({"contractName": "X", "abi": [{"type": "fallback"}]}))
        assert ContractUtility.get_contract(path) == [{"type": "fallback"}]

    def test_bare_abi_list(self, tmp_path) -> None:
        path = tmp_path / "abi.json"
        path.write_text(json.dumps([{"type": "fallback"}]))
        assert ContractUtility.get_contract(str(path)) == [{"type": "fallback"}]

    def test_missing_abi(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"bytecode": "0x"}))
        with pytest.raises(ValueError, match="No ABI found"):
            ContractUtility.get_contract(path)


class TestNetworkConfig:
    """Test dapp config.json loading."""

    def test_load_entry(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "localhost": {"url": "http://localhost:7545", "appAddress": "0xF1"},
        }))
        entry = ContractUtility.load_network_config(path, "localhost")
        assert entry == {"url": "http://localhost:7545", "appAddress": "0xF1"}

    def test_missing_network(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"localhost": {"url": "http://localhost:7545"}}))
        with pytest.raises(ValueError, match="Network 'rinkeby' not found"):
            ContractUtility.load_network_config(path, "rinkeby")
