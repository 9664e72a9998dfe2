"""Unit tests for the health API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from flight_oracle.src.HealthApi import API_MESSAGE, bind_socket, create_app, serve_api
from flight_oracle.src.OraclePool import OracleIdentity, OraclePool


class TestHealthApi:
    """Test the HTTP endpoints."""

    def test_api_message(self) -> None:
        client = TestClient(create_app())
        response = client.get("/api")

        assert response.status_code == 200
        assert response.json() == {"message": API_MESSAGE}

    def test_oracles_before_registration(self) -> None:
        """The pool is reported as not ready while registering."""
        client = TestClient(create_app(lambda: None))
        response = client.get("/api/oracles")

        assert response.json() == {"ready": False, "count": 0, "oracles": []}

    def test_oracles_listed(self) -> None:
        pool = OraclePool([OracleIdentity("0x01", (1, 2, 3)), OracleIdentity("0x02", (4, 5, 6))])
        client = TestClient(create_app(lambda: pool))
        body = client.get("/api/oracles").json()

        assert body["ready"] is True
        assert body["count"] == 2
        assert body["oracles"][1] == {"identifier": "0x02", "indexes": [4, 5, 6]}


class TestServeApi:
    """Test starting the API server."""

    def test_busy_port_raises_os_error(self, busy_port) -> None:
        """A busy port surfaces as OSError, never as SystemExit."""
        with pytest.raises(OSError):
            asyncio.run(serve_api(create_app(), "127.0.0.1", busy_port))

    def test_bind_socket_busy_port(self, busy_port) -> None:
        with pytest.raises(OSError):
            bind_socket("127.0.0.1", busy_port)
