"""Database connection helpers."""
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator
import logging
import asyncpg

from gofunc_tables.config import DatabaseConfig
from gofunc_tables.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)


async def connect(config: DatabaseConfig) -> asyncpg.Connection:
    """Open a connection and verify it answers.

    Raises:
        DatabaseConnectionError: If the server cannot be reached or rejects the login
    """
    try:
        conn = await asyncpg.connect(dsn=config.dsn())
    except asyncpg.InvalidCatalogNameError as e:
        raise DatabaseConnectionError(
            f"Database {config.database!r} does not exist. Create it first: createdb {config.database}"
        ) from e
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise DatabaseConnectionError(
            f"Failed to connect to {config.host}:{config.port}/{config.database}: {e}"
        ) from e

    try:
        await conn.fetchval("SELECT 1")
    except asyncpg.PostgresError as e:
        await conn.close()
        raise DatabaseConnectionError(f"Failed to ping database: {e}") from e

    logger.info(f"Connected to PostgreSQL at {config.host}:{config.port}/{config.database}")
    return conn


@asynccontextmanager
async def open_connection(config: DatabaseConfig) -> AsyncIterator[asyncpg.Connection]:
    """Connection scoped to the block; closed on every exit path."""
    conn = await connect(config)
    try:
        yield conn
    finally:
        await conn.close()


async def server_version(config: DatabaseConfig) -> str:
    async with open_connection(config) as conn:
        return await conn.fetchval("SELECT version()")
