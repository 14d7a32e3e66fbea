import logging
import time

from ._schema import SCHEMA_SQL, SCHEMA_VERSION, STATE_DEFAULTS

logger = logging.getLogger("storage")


async def run_migrations(db, logger_override=None):
    log = logger_override or logger
    current_version = 0
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
            if row and row[0] is not None:
                current_version = row[0]
    except Exception:
        # Fresh database: schema_version does not exist yet.
        pass

    if current_version < SCHEMA_VERSION:
        log.info("Migrating database from v%d to v%d", current_version, SCHEMA_VERSION)
        await db.executescript(SCHEMA_SQL)

        await seed_state(db)
        await db.execute(
            "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
            (SCHEMA_VERSION, time.time()),
        )
        await db.commit()
        log.info("Migration complete (v%d)", SCHEMA_VERSION)
    else:
        log.debug("Database schema up to date (v%d)", current_version)


async def seed_state(db):
    await db.executemany(
        "INSERT OR IGNORE INTO index_state (key, value) VALUES (?, ?)",
        list(STATE_DEFAULTS.items()),
    )
