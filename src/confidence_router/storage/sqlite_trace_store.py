"""SQLite-backed route trace store for observability and metrics warm-up."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from confidence_router.models.domain import RouteTrace
from confidence_router.storage.migrations import initialize_trace_db


class SQLiteTraceStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_trace_db(self._db_path)

    async def save_trace(self, trace: RouteTrace) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO route_traces "
                "(trace_id, query, query_type, strategy, timestamp, latency_ms, confidence, "
                "source, conflict, cache_hit, partial, reason_codes, executions, winning_sources) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    trace.trace_id,
                    trace.query,
                    trace.query_type,
                    trace.strategy,
                    trace.timestamp.isoformat(),
                    trace.latency_ms,
                    trace.confidence,
                    trace.source,
                    int(trace.conflict),
                    int(trace.cache_hit),
                    int(trace.partial),
                    json.dumps([str(code) for code in trace.reason_codes]),
                    json.dumps(trace.executions),
                    json.dumps(trace.winning_sources),
                ),
            )
            await db.commit()

    async def get_trace(self, trace_id: str) -> RouteTrace | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM route_traces WHERE trace_id = ?", (trace_id,)
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_trace(row)

    async def get_recent_traces(self, limit: int = 100) -> list[RouteTrace]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM route_traces ORDER BY timestamp DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_trace(row) for row in rows]

    @staticmethod
    def _row_to_trace(row: aiosqlite.Row) -> RouteTrace:
        timestamp = datetime.fromisoformat(row["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return RouteTrace(
            trace_id=row["trace_id"],
            query=row["query"],
            query_type=row["query_type"],
            strategy=row["strategy"],
            timestamp=timestamp,
            latency_ms=row["latency_ms"],
            confidence=row["confidence"],
            source=row["source"],
            conflict=bool(row["conflict"]),
            cache_hit=bool(row["cache_hit"]),
            partial=bool(row["partial"]),
            reason_codes=json.loads(row["reason_codes"]),
            executions=json.loads(row["executions"]),
            winning_sources=json.loads(row["winning_sources"]),
        )
