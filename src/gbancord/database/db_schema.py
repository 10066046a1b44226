"""
Database schema initialization.

Timestamps are stored as INTEGER unix seconds (UTC) so comparisons need no
string parsing or timezone conversion. Snowflakes are stored as TEXT.
"""

import aiosqlite
from gbancord.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the gban tables and indexes and records the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        # Active gbans, one row per user
        await db.execute("""
            CREATE TABLE IF NOT EXISTS gbans (
                user_id TEXT PRIMARY KEY,
                reason TEXT NOT NULL,
                banned_by TEXT NOT NULL,
                created_at INTEGER NOT NULL
            )
        """)

        # Gbans not applied anywhere yet (user could not be reached)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS pending_gbans (
                user_id TEXT PRIMARY KEY,
                reason TEXT NOT NULL,
                banned_by TEXT NOT NULL,
                created_at INTEGER NOT NULL
            )
        """)

        # Gban targets
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guilds (
                guild_id TEXT PRIMARY KEY,
                guild_name TEXT NOT NULL DEFAULT 'Unnamed',
                added_at INTEGER NOT NULL,
                last_activity INTEGER
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS log_channels (
                channel_id TEXT PRIMARY KEY,
                channel_name TEXT NOT NULL DEFAULT '',
                added_by TEXT NOT NULL,
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_guilds_added_at ON guilds(added_at)"
        )
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_guilds_last_activity ON guilds(last_activity)"
        )

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
