# core/models.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, overload
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InvalidRequestError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@overload
def coerce_datetime(value: datetime | str | None, default: datetime) -> datetime: ...


@overload
def coerce_datetime(
    value: datetime | str | None,
    default: datetime | None = None,
) -> datetime | None: ...


def coerce_datetime(
    value: datetime | str | None,
    default: datetime | None = None,
) -> datetime | None:
    dt: datetime | None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            dt = default
    else:
        dt = default

    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


AUTO_TITLE_KEY = "auto_generated"


class ChatSession(BaseModel):
    """A conversation session owned by a single user.

    The title is generated from the user's messages while the session is
    auto-titled (``metadata["auto_generated"]`` is true). A user rename clears
    the flag and the title is left alone from then on.
    """

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamps(cls, value: Any) -> Any:
        return coerce_datetime(value, default=utc_now())

    @property
    def auto_titled(self) -> bool:
        return bool(self.metadata.get(AUTO_TITLE_KEY, False))

    def touch(self, when: datetime | None = None) -> None:
        """Advance ``updated_at``; it never moves backwards."""
        when = when or utc_now()
        if when > self.updated_at:
            self.updated_at = when


class ChatMessage(BaseModel):
    """A single append-only message in a session."""

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    user_id: str
    role: ChatRole
    content: str
    embedding: list[float] | None = None
    tokens_used: int | None = None
    model_used: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: Any) -> Any:
        return coerce_datetime(value, default=utc_now())


class SemanticMemoryEntry(BaseModel):
    """A consolidated long-term record derived from one user/assistant exchange.

    Entries are write-once: retrieval never changes them and similar topics
    accumulate as separate entries.
    """

    model_config = ConfigDict(frozen=True)

    memory_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    content: str
    summary: str | None = None
    embedding: list[float]
    importance_score: float = Field(ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, value: Any) -> Any:
        return coerce_datetime(value, default=utc_now())


class MessageHit(BaseModel):
    """A past message returned by similarity search."""

    message: ChatMessage
    similarity: float

    @property
    def created_at(self) -> datetime:
        return self.message.created_at


class MemoryHit(BaseModel):
    """A semantic memory entry returned by similarity search."""

    entry: SemanticMemoryEntry
    similarity: float

    @property
    def created_at(self) -> datetime:
        return self.entry.created_at


class SessionSummary(BaseModel):
    session_id: str
    title: str
    last_message: str | None = None
    message_count: int = 0
    created_at: datetime
    updated_at: datetime
    auto_titled: bool = False


class PromptTurn(BaseModel):
    """One role/content turn sent to the completion service."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class ChatRequest(BaseModel):
    """Caller-facing request: ``{message, sessionId?, systemPrompt?}``."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    session_id: str | None = Field(default=None, alias="sessionId")
    system_prompt: str | None = Field(default=None, alias="systemPrompt")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChatRequest:
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidRequestError(f"Malformed chat request: {e}") from e


class ContextUsage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    similar_messages: int = Field(default=0, alias="similarMessages")
    semantic_memory: int = Field(default=0, alias="semanticMemory")
    recent_messages: int = Field(default=0, alias="recentMessages")


class ChatResponse(BaseModel):
    """Caller-facing response.

    ``to_payload()`` emits the wire names: ``message``, ``sessionId``,
    ``tokensUsed`` and ``contextUsed``.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: str = Field(alias="sessionId")
    tokens_used: int = Field(default=0, alias="tokensUsed")
    context_used: ContextUsage = Field(default_factory=ContextUsage, alias="contextUsed")
    memory_id: str | None = Field(default=None, exclude=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
