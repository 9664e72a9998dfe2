"""HealthApi: Minimal HTTP API for liveness probing and pool inspection."""

from __future__ import annotations

import logging
import socket
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI

from .OraclePool import OraclePool

logger = logging.getLogger(__name__)

API_MESSAGE = "An API for use with your Dapp!"


def create_app(get_pool: Callable[[], OraclePool | None] | None = None) -> FastAPI:
    """Build the FastAPI application.

    :param get_pool: Callable returning the current pool, or None while
        oracles are still registering.
    :returns: The FastAPI app.
    """
    app = FastAPI(
        title="Flight Oracle Relay",
        description="Registers FlightSurety oracles and relays status responses",
    )

    @app.get("/api")
    def api() -> dict:
        return {"message": API_MESSAGE}

    @app.get("/api/oracles")
    def oracles() -> dict:
        pool = get_pool() if get_pool else None
        if pool is None:
            return {"ready": False, "count": 0, "oracles": []}
        return {"ready": True, "count": len(pool), "oracles": pool.to_list()}

    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket for the API.

    :raises OSError: If the address is in use or cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


async def serve_api(app: FastAPI, host: str, port: int) -> None:
    """Serve the app on the running event loop until cancelled.

    The socket is bound before uvicorn starts, so a busy port raises
    :class:`OSError` here instead of exiting the process.

    :raises OSError: If the API cannot listen on ``host:port``.
    """
    sock = bind_socket(host, port)
    config = uvicorn.Config(app, log_level="warning")
    server = uvicorn.Server(config)
    logger.info(f"Health API listening on http://{host}:{port}/api")
    try:
        await server.serve(sockets=[sock])
    except SystemExit as e:
        raise OSError(f"Health API failed to start (exit code {e.code})") from None
    finally:
        sock.close()
