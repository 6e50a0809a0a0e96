"""FastAPI server exposing the connection pool over JSON-RPC.

Routes:
- ``POST <mcp_path>``: one JSON-RPC request per call
- ``GET /health``: liveness, with the current connection count
"""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from row_serve.core.config import ServerConfig
from row_serve.core.exceptions import PoolError
from row_serve.core.pool import ConnectionPool
from row_serve.mcp.protocol import Dispatcher

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def create_app(config: ServerConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The pool and dispatcher are built in the lifespan and kept on
    ``app.state``; shutdown closes every pooled connection.
    """
    config = config or ServerConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pool = ConnectionPool(config)
        app.state.pool = pool
        app.state.dispatcher = Dispatcher(pool, config)
        logger.info(
            "row-serve ready (max_connections=%d, request_timeout=%gs)",
            config.max_connections,
            config.request_timeout,
        )

        yield

        logger.info("Shutting down, closing %d connection(s)", pool.size())
        try:
            async with asyncio.timeout(config.shutdown_timeout):
                await pool.close()
        except PoolError as e:
            logger.error("Error closing connection pool: %s", e)
        except TimeoutError:
            logger.error(
                "Connection pool did not close within %gs", config.shutdown_timeout
            )

    app = FastAPI(
        title="row-serve",
        description="Pooled database connections over JSON-RPC",
        version=config.server_version,
        lifespan=lifespan,
    )
    app.state.config = config

    if config.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-API-Key"],
            max_age=86400,
        )

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "connections": request.app.state.pool.size(),
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

    if config.enable_mcp:

        @app.post(config.mcp_path)
        async def mcp_handler(request: Request) -> JSONResponse:
            """Handle one JSON-RPC request.

            The raw body goes to the dispatcher so malformed JSON yields a
            JSON-RPC parse error rather than an HTTP validation error.
            """
            body = await request.body()
            response = await request.app.state.dispatcher.handle_raw(body)
            return JSONResponse(content=response)

    return app


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def run_server(config: ServerConfig, host: str = "0.0.0.0", port: int = 8080) -> None:
    """Serve the application with uvicorn until interrupted.

    uvicorn handles SIGINT/SIGTERM; in-flight requests get
    ``shutdown_timeout`` seconds before the lifespan closes the pool.
    """
    import uvicorn

    configure_logging(config.log_level)
    logger.info("Starting row-serve on %s:%d", host, port)
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level=config.log_level.lower(),
        timeout_graceful_shutdown=math.ceil(config.shutdown_timeout),
    )
