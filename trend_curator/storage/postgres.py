"""
PostgreSQL repository implementations.

This module provides asyncpg-based implementations of the storage interfaces.
All tables carry a ``project_id`` column and every query is scoped by it.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import asyncpg
from asyncpg import Pool

from trend_curator.storage.interfaces import (
    ConnectionError,
    IntegrityError,
    ProcessingStatusRepository,
    SignalRepository,
    StorageError,
    TrendRepository,
)
from trend_curator.types import (
    ProcessingPhase,
    ProcessingStatus,
    Signal,
    SignalFilter,
    SignalStatus,
    SimilarityScore,
    Trend,
    TrendStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS trends (
    project_id TEXT NOT NULL,
    id TEXT NOT NULL,
    title TEXT NOT NULL,
    summary TEXT NOT NULL,
    note TEXT,
    signal_count INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ,
    PRIMARY KEY (project_id, id)
);

CREATE TABLE IF NOT EXISTS signals (
    project_id TEXT NOT NULL,
    id TEXT NOT NULL,
    original_text TEXT NOT NULL,
    title TEXT,
    source TEXT,
    note TEXT,
    status TEXT NOT NULL DEFAULT 'Pending',
    trend_id TEXT,
    similar_signals JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ,
    PRIMARY KEY (project_id, id),
    CHECK ((status = 'Combined') = (trend_id IS NOT NULL))
);

CREATE INDEX IF NOT EXISTS idx_signals_pending
    ON signals (project_id, status, created_at, id);
CREATE INDEX IF NOT EXISTS idx_signals_trend
    ON signals (project_id, trend_id);

CREATE TABLE IF NOT EXISTS processing_status (
    project_id TEXT PRIMARY KEY,
    status TEXT NOT NULL DEFAULT 'pending',
    total_signals INTEGER NOT NULL DEFAULT 0,
    embeddings_complete INTEGER NOT NULL DEFAULT 0,
    embedding_similarities_complete INTEGER NOT NULL DEFAULT 0,
    claude_verifications_complete INTEGER NOT NULL DEFAULT 0,
    claude_verification_failures INTEGER NOT NULL DEFAULT 0,
    started_at TIMESTAMPTZ,
    completed_at TIMESTAMPTZ,
    error_message TEXT
);
"""

SIGNAL_COLUMNS = frozenset(
    {"original_text", "title", "source", "note", "status", "trend_id", "updated_at"}
)
TREND_COLUMNS = frozenset(
    {"title", "summary", "note", "signal_count", "status", "updated_at"}
)
STATUS_COLUMNS = frozenset(
    {
        "status",
        "total_signals",
        "embeddings_complete",
        "embedding_similarities_complete",
        "claude_verifications_complete",
        "claude_verification_failures",
        "started_at",
        "completed_at",
        "error_message",
    }
)


# ============================================================================
# Connection Pool Management
# ============================================================================


class PostgreSQLConnectionPool:
    """
    Manages PostgreSQL connection pool lifecycle.

    A single shared pool is handed to every repository instance.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "curator",
        user: str = "curator",
        password: str = "curator",
        min_size: int = 2,
        max_size: int = 10,
    ):
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[Pool] = None

    async def connect(self) -> Pool:
        """
        Create and return a connection pool.

        Raises:
            ConnectionError: If connection fails
        """
        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
            )
            logger.info(
                f"PostgreSQL connection pool created: {self.host}:{self.port}/{self.database}"
            )
            return self._pool
        except Exception as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise ConnectionError(f"Database connection failed: {e}")

    async def close(self):
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @property
    def pool(self) -> Optional[Pool]:
        return self._pool


async def initialize_schema(pool: Pool) -> None:
    """Create tables and indexes if they do not exist."""
    try:
        async with pool.acquire() as conn:
            await conn.execute(SCHEMA)
        logger.info("Database schema initialized")
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        raise StorageError(f"Failed to initialize schema: {e}")


# ============================================================================
# Helper Functions
# ============================================================================


def _row_to_signal(row: asyncpg.Record) -> Signal:
    return Signal(
        id=row["id"],
        original_text=row["original_text"],
        title=row["title"],
        source=row["source"],
        note=row["note"],
        status=SignalStatus(row["status"]),
        trend_id=row["trend_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_trend(row: asyncpg.Record) -> Trend:
    return Trend(
        id=row["id"],
        title=row["title"],
        summary=row["summary"],
        note=row["note"],
        signal_count=row["signal_count"],
        status=TrendStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_status(row: asyncpg.Record) -> ProcessingStatus:
    return ProcessingStatus(
        status=ProcessingPhase(row["status"]),
        total_signals=row["total_signals"],
        embeddings_complete=row["embeddings_complete"],
        embedding_similarities_complete=row["embedding_similarities_complete"],
        claude_verifications_complete=row["claude_verifications_complete"],
        claude_verification_failures=row["claude_verification_failures"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        error_message=row["error_message"],
    )


def _parse_similar(raw: Any) -> List[SimilarityScore]:
    """Decode the pipeline's ``[{id, score}]`` JSONB column."""
    if raw is None:
        return []
    data = json.loads(raw) if isinstance(raw, str) else raw
    scores = []
    for entry in data or []:
        if isinstance(entry, dict) and "id" in entry and "score" in entry:
            scores.append(SimilarityScore(id=str(entry["id"]), score=float(entry["score"])))
    return scores


def _build_set_clause(
    updates: Dict[str, Any], allowed: frozenset, start: int = 1
) -> tuple[List[str], List[Any]]:
    """Turn an update dict into ``col = $n`` clauses, rejecting unknown columns."""
    set_clauses = []
    params = []
    param_count = start - 1
    for key, value in updates.items():
        if key not in allowed:
            raise StorageError(f"Unknown column: {key}")
        param_count += 1
        set_clauses.append(f"{key} = ${param_count}")
        params.append(value.value if hasattr(value, "value") else value)
    return set_clauses, params


# ============================================================================
# Repository Implementations
# ============================================================================


class PostgreSQLSignalRepository(SignalRepository):
    """PostgreSQL implementation of SignalRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    async def save(self, project_id: str, signal: Signal) -> str:
        try:
            query = """
                INSERT INTO signals (
                    project_id, id, original_text, title, source, note,
                    status, trend_id, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING id
            """
            signal_id = await self.pool.fetchval(
                query,
                project_id,
                signal.id,
                signal.original_text,
                signal.title,
                signal.source,
                signal.note,
                signal.status.value,
                signal.trend_id,
                signal.created_at,
                signal.updated_at,
            )
            logger.debug(f"Saved signal {project_id}/{signal_id}")
            return signal_id

        except asyncpg.UniqueViolationError as e:
            raise IntegrityError(f"Signal {signal.id} already exists: {e}")
        except Exception as e:
            logger.error(f"Failed to save signal: {e}")
            raise StorageError(f"Failed to save signal: {e}")

    async def get(self, project_id: str, signal_id: str) -> Optional[Signal]:
        try:
            row = await self.pool.fetchrow(
                "SELECT * FROM signals WHERE project_id = $1 AND id = $2",
                project_id,
                signal_id,
            )
            return _row_to_signal(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get signal {signal_id}: {e}")
            raise StorageError(f"Failed to get signal: {e}")

    async def get_many(self, project_id: str, signal_ids: Sequence[str]) -> List[Signal]:
        if not signal_ids:
            return []
        try:
            rows = await self.pool.fetch(
                "SELECT * FROM signals WHERE project_id = $1 AND id = ANY($2::text[])",
                project_id,
                list(signal_ids),
            )
            return [_row_to_signal(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to get signals: {e}")
            raise StorageError(f"Failed to get signals: {e}")

    async def search(self, project_id: str, filters: SignalFilter) -> List[Signal]:
        try:
            conditions = ["project_id = $1"]
            params: List[Any] = [project_id]

            if filters.status:
                params.append(filters.status.value)
                conditions.append(f"status = ${len(params)}")

            where_clause = " AND ".join(conditions)
            query = f"""
                SELECT * FROM signals
                WHERE {where_clause}
                ORDER BY created_at, id
                LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
            """
            params.extend([filters.limit, filters.offset])

            rows = await self.pool.fetch(query, *params)
            return [_row_to_signal(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to search signals: {e}")
            raise StorageError(f"Failed to search signals: {e}")

    async def count(self, project_id: str, status: Optional[SignalStatus] = None) -> int:
        try:
            if status is None:
                return await self.pool.fetchval(
                    "SELECT COUNT(*) FROM signals WHERE project_id = $1", project_id
                )
            return await self.pool.fetchval(
                "SELECT COUNT(*) FROM signals WHERE project_id = $1 AND status = $2",
                project_id,
                status.value,
            )

        except Exception as e:
            logger.error(f"Failed to count signals: {e}")
            raise StorageError(f"Failed to count signals: {e}")

    async def next_pending(
        self, project_id: str, exclude_id: Optional[str] = None
    ) -> Optional[Signal]:
        try:
            row = await self.pool.fetchrow(
                """
                SELECT * FROM signals
                WHERE project_id = $1 AND status = 'Pending'
                  AND ($2::text IS NULL OR id <> $2)
                ORDER BY created_at, id
                LIMIT 1
                """,
                project_id,
                exclude_id,
            )
            return _row_to_signal(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get next pending signal: {e}")
            raise StorageError(f"Failed to get next pending signal: {e}")

    async def count_pending(self, project_id: str, exclude_id: Optional[str] = None) -> int:
        try:
            return await self.pool.fetchval(
                """
                SELECT COUNT(*) FROM signals
                WHERE project_id = $1 AND status = 'Pending'
                  AND ($2::text IS NULL OR id <> $2)
                """,
                project_id,
                exclude_id,
            )

        except Exception as e:
            logger.error(f"Failed to count pending signals: {e}")
            raise StorageError(f"Failed to count pending signals: {e}")

    async def get_similarity_scores(
        self, project_id: str, signal_id: str
    ) -> List[SimilarityScore]:
        try:
            raw = await self.pool.fetchval(
                "SELECT similar_signals FROM signals WHERE project_id = $1 AND id = $2",
                project_id,
                signal_id,
            )
            return _parse_similar(raw)

        except (ValueError, TypeError) as e:
            logger.warning(f"Malformed similar_signals for {signal_id}: {e}")
            return []
        except Exception as e:
            logger.error(f"Failed to get similarity scores for {signal_id}: {e}")
            raise StorageError(f"Failed to get similarity scores: {e}")

    async def max_numeric_id(self, project_id: str) -> int:
        try:
            value = await self.pool.fetchval(
                """
                SELECT MAX(id::bigint) FROM signals
                WHERE project_id = $1 AND id ~ '^[0-9]+$'
                """,
                project_id,
            )
            return int(value or 0)

        except Exception as e:
            logger.error(f"Failed to read max signal id: {e}")
            raise StorageError(f"Failed to read max signal id: {e}")

    async def update(self, project_id: str, signal_id: str, updates: Dict[str, Any]) -> bool:
        if not updates:
            return False
        try:
            set_clauses, params = _build_set_clause(updates, SIGNAL_COLUMNS, start=3)
            query = f"""
                UPDATE signals
                SET {", ".join(set_clauses)}
                WHERE project_id = $1 AND id = $2
            """
            result = await self.pool.execute(query, project_id, signal_id, *params)
            updated = result.split()[-1] == "1"

            if updated:
                logger.debug(f"Updated signal {project_id}/{signal_id}")
            return updated

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to update signal {signal_id}: {e}")
            raise StorageError(f"Failed to update signal: {e}")

    async def delete(self, project_id: str, signal_id: str) -> bool:
        try:
            result = await self.pool.execute(
                "DELETE FROM signals WHERE project_id = $1 AND id = $2",
                project_id,
                signal_id,
            )
            return result.split()[-1] == "1"

        except Exception as e:
            logger.error(f"Failed to delete signal {signal_id}: {e}")
            raise StorageError(f"Failed to delete signal: {e}")

    async def assign_to_trend(
        self,
        project_id: str,
        signal_ids: Sequence[str],
        trend_id: str,
        note_line: Optional[str] = None,
    ) -> int:
        ids = list(signal_ids)
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    result = await conn.execute(
                        """
                        UPDATE signals
                        SET status = 'Combined',
                            trend_id = $3,
                            note = CASE
                                WHEN $4::text IS NULL THEN note
                                WHEN note IS NULL OR note = '' THEN $4
                                ELSE note || E'\\n\\n' || $4
                            END,
                            updated_at = $5
                        WHERE project_id = $1 AND id = ANY($2::text[])
                          AND status <> 'Combined'
                        """,
                        project_id,
                        ids,
                        trend_id,
                        note_line,
                        utcnow(),
                    )
                    flipped = int(result.split()[-1])
                    if flipped != len(ids):
                        # Raising inside the block rolls the transaction back
                        raise IntegrityError(
                            f"Only {flipped} of {len(ids)} signals could be combined"
                        )
            logger.debug(f"Assigned {flipped} signals to trend {trend_id}")
            return flipped

        except IntegrityError:
            raise
        except Exception as e:
            logger.error(f"Failed to assign signals to trend {trend_id}: {e}")
            raise StorageError(f"Failed to assign signals to trend: {e}")

    async def release_trend(
        self,
        project_id: str,
        trend_id: str,
        signal_ids: Optional[Sequence[str]] = None,
    ) -> int:
        try:
            result = await self.pool.execute(
                """
                UPDATE signals
                SET status = 'Pending', trend_id = NULL, updated_at = $4
                WHERE project_id = $1 AND trend_id = $2
                  AND ($3::text[] IS NULL OR id = ANY($3::text[]))
                """,
                project_id,
                trend_id,
                list(signal_ids) if signal_ids is not None else None,
                utcnow(),
            )
            return int(result.split()[-1])

        except Exception as e:
            logger.error(f"Failed to release signals of trend {trend_id}: {e}")
            raise StorageError(f"Failed to release signals: {e}")

    async def list_by_trend(self, project_id: str, trend_id: str) -> List[Signal]:
        try:
            rows = await self.pool.fetch(
                """
                SELECT * FROM signals
                WHERE project_id = $1 AND trend_id = $2
                ORDER BY created_at, id
                """,
                project_id,
                trend_id,
            )
            return [_row_to_signal(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to list signals of trend {trend_id}: {e}")
            raise StorageError(f"Failed to list trend signals: {e}")

    async def count_by_trend(self, project_id: str, trend_id: str) -> int:
        try:
            return await self.pool.fetchval(
                "SELECT COUNT(*) FROM signals WHERE project_id = $1 AND trend_id = $2",
                project_id,
                trend_id,
            )

        except Exception as e:
            logger.error(f"Failed to count signals of trend {trend_id}: {e}")
            raise StorageError(f"Failed to count trend signals: {e}")


class PostgreSQLTrendRepository(TrendRepository):
    """PostgreSQL implementation of TrendRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    async def save(self, project_id: str, trend: Trend) -> str:
        try:
            query = """
                INSERT INTO trends (
                    project_id, id, title, summary, note, signal_count,
                    status, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING id
            """
            trend_id = await self.pool.fetchval(
                query,
                project_id,
                trend.id,
                trend.title,
                trend.summary,
                trend.note,
                trend.signal_count,
                trend.status.value,
                trend.created_at,
                trend.updated_at,
            )
            logger.debug(f"Saved trend {project_id}/{trend_id}: {trend.title}")
            return trend_id

        except asyncpg.UniqueViolationError as e:
            raise IntegrityError(f"Trend {trend.id} already exists: {e}")
        except Exception as e:
            logger.error(f"Failed to save trend: {e}")
            raise StorageError(f"Failed to save trend: {e}")

    async def get(self, project_id: str, trend_id: str) -> Optional[Trend]:
        try:
            row = await self.pool.fetchrow(
                "SELECT * FROM trends WHERE project_id = $1 AND id = $2",
                project_id,
                trend_id,
            )
            return _row_to_trend(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get trend {trend_id}: {e}")
            raise StorageError(f"Failed to get trend: {e}")

    async def get_many(self, project_id: str, trend_ids: Sequence[str]) -> List[Trend]:
        if not trend_ids:
            return []
        try:
            rows = await self.pool.fetch(
                "SELECT * FROM trends WHERE project_id = $1 AND id = ANY($2::text[])",
                project_id,
                list(trend_ids),
            )
            return [_row_to_trend(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to get trends: {e}")
            raise StorageError(f"Failed to get trends: {e}")

    async def list(self, project_id: str, include_archived: bool = False) -> List[Trend]:
        try:
            rows = await self.pool.fetch(
                """
                SELECT * FROM trends
                WHERE project_id = $1 AND ($2 OR status <> 'archived')
                ORDER BY created_at DESC, id
                """,
                project_id,
                include_archived,
            )
            return [_row_to_trend(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to list trends: {e}")
            raise StorageError(f"Failed to list trends: {e}")

    async def update(self, project_id: str, trend_id: str, updates: Dict[str, Any]) -> bool:
        if not updates:
            return False
        try:
            set_clauses, params = _build_set_clause(updates, TREND_COLUMNS, start=3)
            query = f"""
                UPDATE trends
                SET {", ".join(set_clauses)}
                WHERE project_id = $1 AND id = $2
            """
            result = await self.pool.execute(query, project_id, trend_id, *params)
            updated = result.split()[-1] == "1"

            if updated:
                logger.debug(f"Updated trend {project_id}/{trend_id}")
            return updated

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to update trend {trend_id}: {e}")
            raise StorageError(f"Failed to update trend: {e}")

    async def delete(self, project_id: str, trend_id: str) -> bool:
        try:
            result = await self.pool.execute(
                "DELETE FROM trends WHERE project_id = $1 AND id = $2",
                project_id,
                trend_id,
            )
            return result.split()[-1] == "1"

        except Exception as e:
            logger.error(f"Failed to delete trend {trend_id}: {e}")
            raise StorageError(f"Failed to delete trend: {e}")


class PostgreSQLProcessingStatusRepository(ProcessingStatusRepository):
    """PostgreSQL implementation of ProcessingStatusRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    async def get(self, project_id: str) -> Optional[ProcessingStatus]:
        try:
            row = await self.pool.fetchrow(
                "SELECT * FROM processing_status WHERE project_id = $1", project_id
            )
            return _row_to_status(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get processing status for {project_id}: {e}")
            raise StorageError(f"Failed to get processing status: {e}")

    async def save(self, project_id: str, status: ProcessingStatus) -> None:
        try:
            await self.pool.execute(
                """
                INSERT INTO processing_status (
                    project_id, status, total_signals, embeddings_complete,
                    embedding_similarities_complete, claude_verifications_complete,
                    claude_verification_failures, started_at, completed_at,
                    error_message
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                ON CONFLICT (project_id) DO UPDATE SET
                    status = EXCLUDED.status,
                    total_signals = EXCLUDED.total_signals,
                    embeddings_complete = EXCLUDED.embeddings_complete,
                    embedding_similarities_complete = EXCLUDED.embedding_similarities_complete,
                    claude_verifications_complete = EXCLUDED.claude_verifications_complete,
                    claude_verification_failures = EXCLUDED.claude_verification_failures,
                    started_at = EXCLUDED.started_at,
                    completed_at = EXCLUDED.completed_at,
                    error_message = EXCLUDED.error_message
                """,
                project_id,
                status.status.value,
                status.total_signals,
                status.embeddings_complete,
                status.embedding_similarities_complete,
                status.claude_verifications_complete,
                status.claude_verification_failures,
                status.started_at,
                status.completed_at,
                status.error_message,
            )

        except Exception as e:
            logger.error(f"Failed to save processing status for {project_id}: {e}")
            raise StorageError(f"Failed to save processing status: {e}")

    async def update(self, project_id: str, updates: Dict[str, Any]) -> bool:
        if not updates:
            return False
        try:
            set_clauses, params = _build_set_clause(updates, STATUS_COLUMNS, start=2)
            query = f"""
                UPDATE processing_status
                SET {", ".join(set_clauses)}
                WHERE project_id = $1
            """
            result = await self.pool.execute(query, project_id, *params)
            return result.split()[-1] == "1"

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to update processing status for {project_id}: {e}")
            raise StorageError(f"Failed to update processing status: {e}")
