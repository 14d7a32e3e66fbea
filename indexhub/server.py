"""
server.py - IndexHub server entry point.

Single-process server combining:
 - SQLite persistent storage via StorageManager
 - Indexer registry, ingestion pipeline, query metering and admin services
 - REST API (FastAPI on uvicorn, port 8080)

Usage:
    python -m indexhub.server [--api-port 8080] [--db-path data/indexhub.db]
                              [--owner-id owner] [--slot-seconds 600]
"""

import argparse
import asyncio
import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from indexhub.account import AccountService
from indexhub.admin import AdminController
from indexhub.auth import AuthService
from indexhub.clock import Clock, LedgerClock
from indexhub.errors import IndexHubError
from indexhub.ingest import IngestionPipeline
from indexhub.metering import QueryMeteringEngine
from indexhub.registry import IndexerRegistry
from indexhub.routers import register_all_routers
from indexhub.storage import StorageManager

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)-10s] %(levelname)-5s %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("server")

DEFAULT_OWNER_ID = "owner"


class IndexerServer:
    """Single-process IndexHub server: storage, services and REST API."""

    def __init__(
        self,
        api_port: int = 8080,
        db_path: str = "data/indexhub.db",
        owner_id: str = DEFAULT_OWNER_ID,
        clock: Optional[Clock] = None,
    ):
        self.api_port = api_port
        self.db_path = db_path
        self.owner_id = owner_id
        self.clock = clock or LedgerClock()

        # Storage + services are initialized async in start()
        self.storage: Optional[StorageManager] = None
        self.accounts: Optional[AccountService] = None
        self.auth: Optional[AuthService] = None
        self.registry: Optional[IndexerRegistry] = None
        self.ingest: Optional[IngestionPipeline] = None
        self.metering: Optional[QueryMeteringEngine] = None
        self.admin: Optional[AdminController] = None
        self.owner_api_key = ""
        self._uvicorn_server: Optional[uvicorn.Server] = None

        self.app = FastAPI(title="IndexHub", version="0.1.0")
        self.app.state.server = self
        self._register_error_handlers()
        register_all_routers(self.app)

    async def _init_services(self):
        """Initialize storage and wire up services (must be called in async context)."""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self.storage = StorageManager(self.db_path)
        await self.storage.initialize()

        self.accounts = AccountService(self.storage)
        await self.accounts.setup_defaults(self.owner_id)
        self.auth = AuthService(self.accounts)
        self.owner_api_key = await self.auth.issue_key(self.owner_id)

        self.registry = IndexerRegistry(self.storage, self.accounts, self.clock, self.owner_id)
        self.ingest = IngestionPipeline(self.storage, self.registry, self.clock)
        self.metering = QueryMeteringEngine(
            self.storage, self.accounts, self.clock, registry=self.registry,
        )
        self.admin = AdminController(
            self.storage, self.accounts, self.registry, self.clock, self.owner_id,
        )

        logger.info("Services initialized (db=%s, owner=%s)", self.db_path, self.owner_id)

    def _register_error_handlers(self):
        @self.app.exception_handler(IndexHubError)
        async def indexhub_error(request: Request, exc: IndexHubError):
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        @self.app.exception_handler(ValueError)
        async def value_error(request: Request, exc: ValueError):
            return JSONResponse(status_code=400, content={"detail": str(exc)})

    # -------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------

    async def start(self):
        """Start storage, services and the API server."""
        await self._init_services()
        logger.info("Owner API key: %s", self.owner_api_key)

        config = uvicorn.Config(
            self.app,
            host="0.0.0.0",
            port=self.api_port,
            log_level="info",
        )
        self._uvicorn_server = uvicorn.Server(config)
        logger.info("REST API starting on port %d", self.api_port)
        await self._uvicorn_server.serve()

    async def stop(self):
        """Stop the API server and close storage."""
        if self._uvicorn_server:
            self._uvicorn_server.should_exit = True
        if self.storage:
            await self.storage.close()


def main():
    """CLI entry point for the IndexHub server."""
    parser = argparse.ArgumentParser(description="IndexHub secondary-index and query service")
    parser.add_argument("--api-port", type=int, default=8080, help="REST API port (default: 8080)")
    parser.add_argument("--db-path", default="data/indexhub.db", help="SQLite database path (default: data/indexhub.db)")
    parser.add_argument("--owner-id", default=DEFAULT_OWNER_ID, help="Administrative owner identity (default: owner)")
    parser.add_argument("--slot-seconds", type=float, default=600.0, help="Wall-clock seconds per time slot (default: 600)")
    args = parser.parse_args()

    server = IndexerServer(
        api_port=args.api_port,
        db_path=args.db_path,
        owner_id=args.owner_id,
        clock=LedgerClock(slot_seconds=args.slot_seconds),
    )

    logger.info("=" * 60)
    logger.info("  IndexHub Server")
    logger.info("  REST API:    http://localhost:%d", args.api_port)
    logger.info("  Database:    %s", args.db_path)
    logger.info("  Owner:       %s", args.owner_id)
    logger.info("  Slot length: %.0fs", args.slot_seconds)
    logger.info("=" * 60)

    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
