# jeopardy_bot/db.py
import logging

import asyncpg
from typing import Optional
from .config import DB_USER, DB_PASS, DB_NAME, DB_HOST, DB_PORT, DB_ENABLE_SSL

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS shows
(
    id          SERIAL PRIMARY KEY,
    external_id TEXT UNIQUE,
    show_number INTEGER,
    air_date    TEXT,
    created_at  TIMESTAMP DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS rounds
(
    id      SERIAL PRIMARY KEY,
    show_id INTEGER NOT NULL REFERENCES shows (id) ON DELETE CASCADE,
    name    TEXT    NOT NULL CHECK (name IN ('jeopardy', 'double', 'final'))
);

CREATE TABLE IF NOT EXISTS categories
(
    id       SERIAL PRIMARY KEY,
    round_id INTEGER NOT NULL REFERENCES rounds (id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name     TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS clues
(
    id              SERIAL PRIMARY KEY,
    category_id     INTEGER NOT NULL REFERENCES categories (id) ON DELETE CASCADE,
    question        TEXT    NOT NULL,
    answer          TEXT    NOT NULL,
    value           INTEGER,
    row_index       INTEGER NOT NULL DEFAULT 0,
    is_daily_double BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_rounds_show ON rounds (show_id, name);
CREATE INDEX IF NOT EXISTS idx_categories_round ON categories (round_id, position);
CREATE INDEX IF NOT EXISTS idx_clues_category ON clues (category_id, row_index);
"""


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is not None:
        return _pool

    if not DB_PASS or not DB_NAME:
        raise ValueError("DB_PASS or DB_NAME missing in environment")

    _pool = await asyncpg.create_pool(
        user=DB_USER,
        password=DB_PASS,
        database=DB_NAME,
        host=DB_HOST,
        port=DB_PORT,
        ssl=DB_ENABLE_SSL,
    )
    logger.info("Database pool created")
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema() -> None:
    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)

    logger.info("Schema created / already existed")
