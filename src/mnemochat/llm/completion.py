from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ..core.models import ChatRole, PromptTurn
from ..errors import CompletionFailedError
from ..store.logging import elapsed_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    text: str
    tokens_used: int = 0
    model: str | None = None


def to_langchain_messages(turns: Sequence[PromptTurn]) -> list[BaseMessage]:
    """Convert prompt turns to LangChain message objects."""
    messages: list[BaseMessage] = []
    for turn in turns:
        if turn.role is ChatRole.SYSTEM:
            messages.append(SystemMessage(content=turn.content))
        elif turn.role is ChatRole.ASSISTANT:
            messages.append(AIMessage(content=turn.content))
        else:
            messages.append(HumanMessage(content=turn.content))
    return messages


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content or "")


def _total_tokens(response: Any) -> int:
    usage = getattr(response, "usage_metadata", None) or {}
    total = usage.get("total_tokens")
    if total is None:
        metadata = getattr(response, "response_metadata", None) or {}
        total = (metadata.get("token_usage") or {}).get("total_tokens")
    return int(total or 0)


class CompletionGateway:
    """Invokes the chat-completion model once per request.

    Generation parameters (temperature, max tokens) are configured on the
    chat model itself; see ``ChatPipelineBuilder``.
    """

    def __init__(self, llm: BaseChatModel, *, model: str | None = None) -> None:
        self.llm = llm
        self.model = model or getattr(llm, "model_name", None)

    async def complete(self, turns: Sequence[PromptTurn]) -> CompletionResult:
        start = time.perf_counter()
        try:
            response = await self.llm.ainvoke(to_langchain_messages(turns))
        except Exception as e:
            logger.exception(
                "Completion request failed",
                extra={
                    "model": self.model,
                    "turns": len(turns),
                    "duration_ms": round(elapsed_ms(start), 2),
                },
            )
            raise CompletionFailedError(
                f"Completion service request failed: {e}",
                model=self.model,
                original_error=e,
            ) from e

        text = _message_text(getattr(response, "content", response))
        if not text.strip():
            raise CompletionFailedError("Completion service returned an empty reply", model=self.model)

        metadata = getattr(response, "response_metadata", None) or {}
        result = CompletionResult(
            text=text,
            tokens_used=_total_tokens(response),
            model=metadata.get("model_name") or self.model,
        )
        logger.info(
            "Completion finished",
            extra={
                "model": result.model,
                "turns": len(turns),
                "tokens_used": result.tokens_used,
                "duration_ms": round(elapsed_ms(start), 2),
            },
        )
        return result
