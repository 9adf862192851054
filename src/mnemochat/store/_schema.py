from __future__ import annotations

import sqlite3

SESSIONS_TABLE = "chat_sessions"
MESSAGES_TABLE = "chat_messages"
MEMORY_TABLE = "semantic_memory"


def create_sqlite_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS "{SESSIONS_TABLE}" (
            session_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            metadata TEXT
        )
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS "{MESSAGES_TABLE}" (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            message_id TEXT UNIQUE NOT NULL,
            session_id TEXT NOT NULL
                REFERENCES "{SESSIONS_TABLE}" (session_id) ON DELETE CASCADE,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            embedding BLOB NOT NULL,
            embedding_dim INTEGER NOT NULL,
            tokens_used INTEGER,
            model_used TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS "{MEMORY_TABLE}" (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            memory_id TEXT UNIQUE NOT NULL,
            user_id TEXT NOT NULL,
            content TEXT NOT NULL,
            summary TEXT,
            embedding BLOB NOT NULL,
            embedding_dim INTEGER NOT NULL,
            importance_score REAL NOT NULL,
            tags TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS "{SESSIONS_TABLE}_user_idx"
        ON "{SESSIONS_TABLE}" (user_id, updated_at)
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS "{MESSAGES_TABLE}_session_idx"
        ON "{MESSAGES_TABLE}" (session_id, created_at)
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS "{MESSAGES_TABLE}_user_idx"
        ON "{MESSAGES_TABLE}" (user_id)
        """
    )
    conn.execute(
        f"""
        CREATE INDEX IF NOT EXISTS "{MEMORY_TABLE}_user_idx"
        ON "{MEMORY_TABLE}" (user_id, created_at)
        """
    )
    conn.commit()
