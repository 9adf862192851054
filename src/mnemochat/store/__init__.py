from .base import BaseChatStore
from .memory_store import InMemoryChatStore
from .protocols import (
    ChatStore,
    MemoryEntryStore,
    MessageStore,
    SessionStore,
    SupportsClose,
    SupportsMemorySearch,
    SupportsMessageSearch,
)
from .sqlite_vec_store import SQLiteVecChatStore

__all__ = [
    "BaseChatStore",
    "ChatStore",
    "InMemoryChatStore",
    "MemoryEntryStore",
    "MessageStore",
    "SQLiteVecChatStore",
    "SessionStore",
    "SupportsClose",
    "SupportsMemorySearch",
    "SupportsMessageSearch",
]
