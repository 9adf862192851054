from __future__ import annotations

import logging
import sqlite3
import time
from asyncio import Lock
from pathlib import Path
from typing import Any

try:
    import sqlite_vec
except ImportError:  # pragma: no cover - optional dependency
    sqlite_vec = None

from ..core.models import (
    ChatMessage,
    ChatSession,
    MemoryHit,
    MessageHit,
    SemanticMemoryEntry,
    SessionSummary,
)
from ..errors import SerializationError, StoreError, StoreWriteFailedError
from ._records import (
    sqlite_memory_from_row,
    sqlite_message_from_row,
    sqlite_record_from_memory,
    sqlite_record_from_message,
    sqlite_record_from_session,
    sqlite_session_from_row,
    sqlite_summary_from_row,
)
from ._schema import MEMORY_TABLE, MESSAGES_TABLE, SESSIONS_TABLE, create_sqlite_schema
from .base import BaseChatStore
from .logging import elapsed_ms, store_log_context
from .serialization import serialize_embedding

logger = logging.getLogger(__name__)


def _insert_sql(table: str, record: dict[str, Any]) -> tuple[str, list[Any]]:
    columns = list(record.keys())
    placeholders = ", ".join("?" for _ in columns)
    sql = f'INSERT INTO "{table}" ({", ".join(columns)}) VALUES ({placeholders})'
    return sql, list(record.values())


class SQLiteVecChatStore(BaseChatStore):
    """Chat store backed by SQLite and the sqlite-vec extension.

    Similarity is ``1 - vec_distance_cosine(...)`` computed inside SQLite.
    Every query filters on ``user_id``.
    """

    store_type = "sqlite-vec"

    def __init__(self, db_path: str | Path = ".mnemochat/mnemochat.sqlite") -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._initialized = False
        self._init_lock = Lock()
        self._lock = Lock()

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            if sqlite_vec is None:
                raise ModuleNotFoundError(
                    "SQLiteVecChatStore requires sqlite-vec. "
                    "Install with `mnemochat[sqlite_vec]`."
                )

            start = time.perf_counter()
            if self.db_path != Path(":memory:"):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA foreign_keys=ON")

            self._conn.enable_load_extension(True)
            sqlite_vec.load(self._conn)
            self._conn.enable_load_extension(False)

            create_sqlite_schema(self._conn)
            self._initialized = True
            logger.info(
                "Initialized SQLite vec chat store at %s",
                self.db_path,
                extra=store_log_context(self.store_type, duration_ms=elapsed_ms(start)),
            )

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteVecChatStore is not initialized.")
        return self._conn

    async def _write(
        self,
        description: str,
        record_id: str,
        statements: list[tuple[str, list[Any]]],
        *,
        user_id: str | None = None,
    ) -> int:
        """Run write statements in one transaction; returns the last rowcount."""
        await self.initialize()
        start = time.perf_counter()
        async with self._lock:
            conn = self._require_conn()
            try:
                rowcount = 0
                for sql, params in statements:
                    rowcount = conn.execute(sql, params).rowcount
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.exception(
                    "Failed to %s %s",
                    description,
                    record_id,
                    extra=store_log_context(
                        self.store_type,
                        record_id=record_id,
                        user_id=user_id,
                        duration_ms=elapsed_ms(start),
                    ),
                )
                raise StoreWriteFailedError(
                    f"Failed to {description}",
                    store_type=self.store_type,
                    record_id=record_id,
                    original_error=e,
                ) from e
        logger.debug(
            "%s %s",
            description.capitalize(),
            record_id,
            extra=store_log_context(
                self.store_type,
                record_id=record_id,
                user_id=user_id,
                duration_ms=elapsed_ms(start),
            ),
        )
        return rowcount

    async def _read(
        self, description: str, sql: str, params: list[Any], *, user_id: str | None = None
    ) -> list[sqlite3.Row]:
        await self.initialize()
        start = time.perf_counter()
        async with self._lock:
            conn = self._require_conn()
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.exception(
                    "Failed to %s",
                    description,
                    extra=store_log_context(
                        self.store_type, user_id=user_id, duration_ms=elapsed_ms(start)
                    ),
                )
                raise StoreError(
                    f"Failed to {description}",
                    store_type=self.store_type,
                    original_error=e,
                ) from e

    # --------------------
    # Sessions
    # --------------------

    async def create_session(self, session: ChatSession) -> None:
        record = sqlite_record_from_session(session)
        await self._write(
            "create session",
            session.session_id,
            [_insert_sql(SESSIONS_TABLE, record)],
            user_id=session.user_id,
        )

    async def get_session(self, session_id: str) -> ChatSession | None:
        rows = await self._read(
            "get session",
            f'SELECT * FROM "{SESSIONS_TABLE}" WHERE session_id = ?',
            [session_id],
        )
        return sqlite_session_from_row(rows[0]) if rows else None

    async def update_session(self, session: ChatSession) -> None:
        record = sqlite_record_from_session(session)
        rowcount = await self._write(
            "update session",
            session.session_id,
            [
                (
                    f'UPDATE "{SESSIONS_TABLE}" SET title = ?, updated_at = ?, metadata = ? '
                    "WHERE session_id = ? AND user_id = ?",
                    [
                        record["title"],
                        record["updated_at"],
                        record["metadata"],
                        session.session_id,
                        session.user_id,
                    ],
                )
            ],
            user_id=session.user_id,
        )
        if rowcount == 0:
            raise StoreWriteFailedError(
                "Session to update does not exist",
                store_type=self.store_type,
                record_id=session.session_id,
            )

    async def list_sessions(self, user_id: str, limit: int = 50) -> list[SessionSummary]:
        rows = await self._read(
            "list sessions",
            f"""
            SELECT s.*,
                (SELECT COUNT(*) FROM "{MESSAGES_TABLE}" m
                 WHERE m.session_id = s.session_id) AS message_count,
                (SELECT m.content FROM "{MESSAGES_TABLE}" m
                 WHERE m.session_id = s.session_id
                 ORDER BY m.created_at DESC, m.id DESC LIMIT 1) AS last_message
            FROM "{SESSIONS_TABLE}" s
            WHERE s.user_id = ?
            ORDER BY s.updated_at DESC
            LIMIT ?
            """,
            [user_id, limit],
            user_id=user_id,
        )
        return [sqlite_summary_from_row(row) for row in rows]

    async def delete_session(self, session_id: str, user_id: str) -> bool:
        rowcount = await self._write(
            "delete session",
            session_id,
            [
                (
                    f'DELETE FROM "{SESSIONS_TABLE}" WHERE session_id = ? AND user_id = ?',
                    [session_id, user_id],
                )
            ],
            user_id=user_id,
        )
        return rowcount > 0

    # --------------------
    # Messages
    # --------------------

    async def append_message(self, message: ChatMessage) -> None:
        record = sqlite_record_from_message(message)
        await self._write(
            "append message",
            message.message_id,
            [_insert_sql(MESSAGES_TABLE, record)],
            user_id=message.user_id,
        )

    async def recent_messages(
        self, session_id: str, user_id: str, limit: int
    ) -> list[ChatMessage]:
        if limit <= 0:
            return []
        rows = await self._read(
            "read recent messages",
            f"""
            SELECT * FROM (
                SELECT * FROM "{MESSAGES_TABLE}"
                WHERE session_id = ? AND user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            )
            ORDER BY created_at ASC, id ASC
            """,
            [session_id, user_id, limit],
            user_id=user_id,
        )
        return self._decode(rows, sqlite_message_from_row)

    async def search_messages(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MessageHit]:
        rows = await self._similarity_rows(
            MESSAGES_TABLE, user_id, query_embedding, threshold=threshold, limit=limit
        )
        return [
            MessageHit(message=message, similarity=row["similarity"])
            for row, message in zip(rows, self._decode(rows, sqlite_message_from_row))
        ]

    # --------------------
    # Semantic memory
    # --------------------

    async def append_memory(self, entry: SemanticMemoryEntry) -> None:
        record = sqlite_record_from_memory(entry)
        await self._write(
            "append memory",
            entry.memory_id,
            [_insert_sql(MEMORY_TABLE, record)],
            user_id=entry.user_id,
        )

    async def list_memories(self, user_id: str, limit: int = 50) -> list[SemanticMemoryEntry]:
        rows = await self._read(
            "list memories",
            f"""
            SELECT * FROM "{MEMORY_TABLE}"
            WHERE user_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            [user_id, limit],
            user_id=user_id,
        )
        return self._decode(rows, sqlite_memory_from_row)

    async def search_memory(
        self,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[MemoryHit]:
        rows = await self._similarity_rows(
            MEMORY_TABLE, user_id, query_embedding, threshold=threshold, limit=limit
        )
        return [
            MemoryHit(entry=entry, similarity=row["similarity"])
            for row, entry in zip(rows, self._decode(rows, sqlite_memory_from_row))
        ]

    async def _similarity_rows(
        self,
        table: str,
        user_id: str,
        query_embedding: list[float],
        *,
        threshold: float,
        limit: int,
    ) -> list[sqlite3.Row]:
        if limit <= 0 or not query_embedding:
            return []
        return await self._read(
            f"search {table}",
            f"""
            SELECT * FROM (
                SELECT t.*, 1.0 - vec_distance_cosine(t.embedding, ?) AS similarity
                FROM "{table}" t
                WHERE t.user_id = ? AND t.embedding_dim = ?
            )
            WHERE similarity >= ?
            ORDER BY similarity DESC, created_at DESC, id DESC
            LIMIT ?
            """,
            [
                serialize_embedding(query_embedding),
                user_id,
                len(query_embedding),
                threshold,
                limit,
            ],
            user_id=user_id,
        )

    def _decode(self, rows, decoder):
        try:
            return [decoder(row) for row in rows]
        except (SerializationError, TypeError, ValueError) as e:
            logger.exception(
                "Failed to decode stored rows",
                extra=store_log_context(self.store_type),
            )
            raise StoreError(
                "Failed to decode stored rows",
                store_type=self.store_type,
                original_error=e,
            ) from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
        self._conn = None
        self._initialized = False
