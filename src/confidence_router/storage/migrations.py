"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

ROUTE_TRACES_TABLE = """
CREATE TABLE IF NOT EXISTS route_traces (
    trace_id TEXT PRIMARY KEY,
    query TEXT NOT NULL,
    query_type TEXT NOT NULL,
    strategy TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    latency_ms REAL NOT NULL,
    confidence INTEGER NOT NULL,
    source TEXT NOT NULL,
    conflict INTEGER NOT NULL DEFAULT 0,
    cache_hit INTEGER NOT NULL DEFAULT 0,
    partial INTEGER NOT NULL DEFAULT 0,
    reason_codes TEXT NOT NULL DEFAULT '[]',
    executions TEXT NOT NULL DEFAULT '[]',
    winning_sources TEXT NOT NULL DEFAULT '[]'
)
"""

ROUTE_TRACES_TIMESTAMP_INDEX = """
CREATE INDEX IF NOT EXISTS idx_route_traces_timestamp ON route_traces(timestamp)
"""


async def initialize_trace_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(ROUTE_TRACES_TABLE)
        await db.execute(ROUTE_TRACES_TIMESTAMP_INDEX)
        await db.commit()
