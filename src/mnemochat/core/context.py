from __future__ import annotations

from collections.abc import Sequence

from .config import ContextConfig, RetrievalConfig
from .models import ChatMessage, ChatRole, MemoryHit, MessageHit, PromptTurn

MEMORY_HEADER = "Relevant context from previous conversations:"
SIMILAR_HEADER = "Similar past conversations:"


class ContextAssembler:
    """Builds the ordered prompt sent to the completion service.

    Order is fixed: one system turn (instructions, then memory lines, then
    similar-conversation lines), the recent history oldest to newest, and
    the live user message last. Empty sections are omitted. The output
    depends only on the inputs.
    """

    def __init__(
        self,
        config: ContextConfig | None = None,
        retrieval_config: RetrievalConfig | None = None,
    ):
        self.config = config or ContextConfig()
        self.retrieval_config = retrieval_config or RetrievalConfig()

    def assemble(
        self,
        current_user_text: str,
        *,
        system_prompt: str | None = None,
        memory_hits: Sequence[MemoryHit] = (),
        similar_hits: Sequence[MessageHit] = (),
        recent_history: Sequence[ChatMessage] = (),
    ) -> list[PromptTurn]:
        turns = [
            PromptTurn(
                role=ChatRole.SYSTEM,
                content=self.build_system_content(system_prompt, memory_hits, similar_hits),
            )
        ]
        turns.extend(
            PromptTurn(role=message.role, content=message.content)
            for message in self._history_window(recent_history)
        )
        turns.append(PromptTurn(role=ChatRole.USER, content=current_user_text))
        return turns

    def build_system_content(
        self,
        system_prompt: str | None,
        memory_hits: Sequence[MemoryHit] = (),
        similar_hits: Sequence[MessageHit] = (),
    ) -> str:
        content = system_prompt if system_prompt and system_prompt.strip() else None
        content = content or self.config.default_system_prompt

        if memory_hits:
            lines = [
                f"{index}. {hit.entry.summary or hit.entry.content}"
                for index, hit in enumerate(memory_hits, start=1)
            ]
            content += f"\n\n{MEMORY_HEADER}\n" + "\n".join(lines)

        if similar_hits:
            lines = [
                f"{index}. {hit.message.role.value}: {self._preview(hit.message.content)}"
                for index, hit in enumerate(similar_hits, start=1)
            ]
            content += f"\n\n{SIMILAR_HEADER}\n" + "\n".join(lines)

        return content

    def _history_window(self, recent_history: Sequence[ChatMessage]) -> Sequence[ChatMessage]:
        limit = self.retrieval_config.history_context_limit
        if limit <= 0:
            return ()
        return recent_history[-limit:]

    def _preview(self, text: str) -> str:
        limit = self.config.similar_preview_chars
        if len(text) <= limit:
            return text
        return text[:limit] + self.config.ellipsis
