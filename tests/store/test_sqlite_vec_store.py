import sqlite3

import pytest

from mnemochat.errors import StoreError, StoreWriteFailedError
from mnemochat.store.sqlite_vec_store import SQLiteVecChatStore

sqlite_vec = pytest.importorskip("sqlite_vec")

try:
    conn = sqlite3.connect(":memory:")
    conn.enable_load_extension(True)
    sqlite_vec.load(conn)
    conn.enable_load_extension(False)
    conn.close()
except (sqlite3.Error, AttributeError):
    pytest.skip("sqlite-vec extension is not loadable", allow_module_level=True)


@pytest.mark.asyncio
async def test_sqlite_vec_data_survives_reopen(tmp_path, chat_session, make_message, make_memory):
    db_path = tmp_path / "nested" / "chat.sqlite"
    store = SQLiteVecChatStore(db_path=db_path)
    await store.initialize()

    message = make_message("launch plan for phoenix")
    memory = make_memory("User: launch\nAssistant: ok", tags=["work"])
    try:
        await store.create_session(chat_session)
        await store.append_message(message)
        await store.append_memory(memory)
    finally:
        await store.close()

    store2 = SQLiteVecChatStore(db_path=db_path)
    await store2.initialize()
    try:
        session = await store2.get_session("session-1")
        assert session.metadata == {"auto_generated": True}

        [loaded] = await store2.recent_messages("session-1", "alice", 10)
        assert loaded.message_id == message.message_id
        assert loaded.created_at == message.created_at

        [entry] = await store2.list_memories("alice")
        assert entry.memory_id == memory.memory_id
        assert entry.tags == ["work"]
    finally:
        await store2.close()


@pytest.mark.asyncio
async def test_sqlite_vec_initialize_is_idempotent(tmp_path):
    store = SQLiteVecChatStore(db_path=tmp_path / "chat.sqlite")
    try:
        await store.initialize()
        await store.initialize()
        assert await store.list_sessions("alice") == []
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sqlite_vec_duplicate_session_is_write_error(tmp_path, chat_session):
    store = SQLiteVecChatStore(db_path=tmp_path / "chat.sqlite")
    try:
        await store.create_session(chat_session)
        with pytest.raises(StoreWriteFailedError) as excinfo:
            await store.create_session(chat_session)
        assert excinfo.value.record_id == "session-1"
        assert excinfo.value.store_type == "sqlite-vec"
        assert isinstance(excinfo.value.original_error, sqlite3.IntegrityError)
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sqlite_vec_update_of_missing_session_fails(tmp_path, chat_session):
    store = SQLiteVecChatStore(db_path=tmp_path / "chat.sqlite")
    try:
        with pytest.raises(StoreWriteFailedError):
            await store.update_session(chat_session)
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sqlite_vec_corrupt_embedding_is_store_error(tmp_path, chat_session, make_message):
    db_path = tmp_path / "chat.sqlite"
    store = SQLiteVecChatStore(db_path=db_path)
    try:
        await store.create_session(chat_session)
        await store.append_message(make_message("fine"))
    finally:
        await store.close()

    raw = sqlite3.connect(db_path)
    raw.execute("UPDATE chat_messages SET embedding = ?", [b"\x00\x01\x02"])
    raw.commit()
    raw.close()

    store = SQLiteVecChatStore(db_path=db_path)
    try:
        with pytest.raises(StoreError):
            await store.recent_messages("session-1", "alice", 10)
    finally:
        await store.close()
