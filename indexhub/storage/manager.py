import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import aiosqlite

from ._schema import SCHEMA_VERSION
from ._migrate import run_migrations
from .accounts import AccountRepo
from .state import StateRepo
from .indexers import IndexerRepo
from .blocks import BlockRepo
from .transactions import TransactionRepo
from .events import EventRepo
from .token_transfers import TokenTransferRepo
from .contracts import ContractRepo
from .activity import ActivityRepo
from .query_cache import QueryCacheRepo
from .query_stats import QueryStatsRepo
from .analytics import AnalyticsRepo

logger = logging.getLogger("storage")


class StorageManager:
    """Top-level manager: opens the database, runs migrations, exposes repos.

    Repo write methods never commit on their own; every mutation runs inside
    ``transaction()``, which serializes writers and commits or rolls back the
    whole operation.
    """

    def __init__(self, db_path: str = "indexhub.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()
        self._lock_owner: Optional[asyncio.Task] = None
        self.state: Optional[StateRepo] = None
        self.accounts: Optional[AccountRepo] = None
        self.indexers: Optional[IndexerRepo] = None
        self.blocks: Optional[BlockRepo] = None
        self.transactions: Optional[TransactionRepo] = None
        self.events: Optional[EventRepo] = None
        self.token_transfers: Optional[TokenTransferRepo] = None
        self.contracts: Optional[ContractRepo] = None
        self.activity: Optional[ActivityRepo] = None
        self.query_cache: Optional[QueryCacheRepo] = None
        self.query_stats: Optional[QueryStatsRepo] = None
        self.analytics: Optional[AnalyticsRepo] = None

    async def initialize(self):
        # Autocommit mode: transactions are opened explicitly in transaction().
        self._db = await aiosqlite.connect(self.db_path, isolation_level=None)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")
        await run_migrations(self._db, logger)

        self.state = StateRepo(self._db)
        self.accounts = AccountRepo(self._db)
        self.indexers = IndexerRepo(self._db)
        self.blocks = BlockRepo(self._db)
        self.transactions = TransactionRepo(self._db)
        self.events = EventRepo(self._db)
        self.token_transfers = TokenTransferRepo(self._db)
        self.contracts = ContractRepo(self._db)
        self.activity = ActivityRepo(self._db)
        self.query_cache = QueryCacheRepo(self._db)
        self.query_stats = QueryStatsRepo(self._db)
        self.analytics = AnalyticsRepo(self._db)

        logger.info("Storage initialized: %s (schema v%d)", self.db_path, SCHEMA_VERSION)

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("StorageManager.initialize() has not been called")
        return self._db

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed block as one all-or-nothing write transaction."""
        async with self._write_lock:
            self._lock_owner = asyncio.current_task()
            db = self.db
            try:
                await db.execute("BEGIN IMMEDIATE")
                try:
                    yield db
                except BaseException:
                    await db.rollback()
                    raise
                else:
                    await db.commit()
            finally:
                self._lock_owner = None

    @asynccontextmanager
    async def read(self):
        """Run the enclosed reads against committed state only.

        Readers share the writer's connection, so they wait for any open
        transaction to finish. Inside the task that holds the lock this is a
        no-op.
        """
        if self._lock_owner is not None and self._lock_owner is asyncio.current_task():
            yield self.db
            return
        async with self._write_lock:
            self._lock_owner = asyncio.current_task()
            try:
                yield self.db
            finally:
                self._lock_owner = None

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Storage closed")
