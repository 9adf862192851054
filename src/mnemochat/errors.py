"""
Error taxonomy for Mnemochat.

Defines the exceptions raised by the conversation pipeline so callers can
tell a bad request apart from an ownership problem, an unavailable model
service, or a failed write.
"""

from __future__ import annotations


class MnemochatError(Exception):
    """Base exception for all Mnemochat errors.

    All custom exceptions in Mnemochat inherit from this class
    to enable catch-all error handling when needed.
    """

    pass


class InvalidRequestError(MnemochatError):
    """The request is malformed and was rejected before any external call.

    Raised for empty or whitespace-only messages, payloads that fail
    validation, and invalid search parameters. The caller can fix the
    request and resubmit.
    """

    pass


class SessionNotFoundError(InvalidRequestError):
    """The referenced session does not exist."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class UnauthorizedError(MnemochatError):
    """No authenticated user identity was supplied."""

    pass


class SessionNotOwnedError(UnauthorizedError):
    """The session exists but belongs to a different user.

    Fatal for the request; retrying with the same identity will not help.
    """

    def __init__(self, session_id: str, user_id: str):
        super().__init__(f"Session {session_id} is not owned by user {user_id}")
        self.session_id = session_id
        self.user_id = user_id


class EmbeddingUnavailableError(MnemochatError):
    """The embedding service failed or returned an unusable vector.

    Attributes:
        model: Embedding model identifier, when known
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.model = model
        self.original_error = original_error

    def __str__(self) -> str:
        if self.model:
            return f"{self.args[0]}: model={self.model}"
        return self.args[0]


class CompletionFailedError(MnemochatError):
    """The completion service failed; no assistant message was written."""

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.model = model
        self.original_error = original_error

    def __str__(self) -> str:
        if self.model:
            return f"{self.args[0]}: model={self.model}"
        return self.args[0]


class StoreError(MnemochatError):
    """Store operation failed.

    Raised when a storage backend operation fails due to connectivity,
    database errors, or other infrastructure issues.

    Attributes:
        message: Human-readable error description
        store_type: Type of store that failed (e.g., "memory", "sqlite-vec")
        record_id: Optional session, message or memory ID associated with the error
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        store_type: str,
        record_id: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.store_type = store_type
        self.record_id = record_id
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [self.args[0]]
        if self.store_type:
            parts.append(f"store={self.store_type}")
        if self.record_id:
            parts.append(f"record_id={self.record_id}")
        return f"{': '.join(parts)}"


class StoreWriteFailedError(StoreError):
    """Persisting a session, message or memory entry failed."""

    pass


class SerializationError(MnemochatError):
    """Failed to serialize or deserialize stored data.

    This typically indicates data corruption or format incompatibility.
    """

    pass


class ConfigurationError(MnemochatError):
    """Invalid configuration or settings."""

    pass


# Error handling guidelines:
#
# 1. Store operations:
#    - get_session() -> Return None for "not found" (expected case)
#    - append_message() / append_memory() -> Raise StoreWriteFailedError on failure
#    - delete_session() -> Return False for "not found", True for deleted
#    - Any infrastructure failure on reads -> Raise StoreError
#
# 2. Pipeline stages:
#    - Embedding and completion failures are fatal for the request
#    - Memory consolidation failures are logged and skipped
#    - A persisted user message is never rolled back
#
# 3. Re-raising:
#    - Use "raise CompletionFailedError(...) from e" to preserve cause chain
#    - Use logger.exception() to preserve stack traces
