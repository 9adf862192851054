"""Session resolution, titling and history for chat conversations."""

from __future__ import annotations

import logging

from ..errors import (
    InvalidRequestError,
    SessionNotFoundError,
    SessionNotOwnedError,
    UnauthorizedError,
)
from ..store.protocols import MessageStore, SessionStore
from .config import RetrievalConfig, SessionConfig
from .models import AUTO_TITLE_KEY, ChatMessage, ChatSession, SessionSummary

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, resumes, renames and lists conversation sessions.

    A session created by ``resolve`` is auto-titled: its title is derived
    from the user's message and regenerated after every exchange until the
    user renames it.
    """

    def __init__(
        self,
        store: SessionStore | MessageStore,
        config: SessionConfig | None = None,
        retrieval_config: RetrievalConfig | None = None,
    ):
        self.store = store
        self.config = config or SessionConfig()
        self.retrieval_config = retrieval_config or RetrievalConfig()

    def derive_title(self, text: str) -> str:
        """First ``title_max_chars`` characters of ``text``, ellipsized if cut."""
        limit = self.config.title_max_chars
        if len(text) <= limit:
            return text
        return text[:limit] + self.config.title_ellipsis

    async def resolve(
        self,
        user_id: str,
        session_id: str | None,
        first_message: str,
    ) -> tuple[ChatSession, bool]:
        """Load the caller's session, or create one when no id is given.

        Returns:
            The session and whether it was created by this call.

        Raises:
            SessionNotFoundError: ``session_id`` does not exist.
            SessionNotOwnedError: ``session_id`` belongs to another user.
        """
        if not user_id:
            raise UnauthorizedError("A user id is required to resolve a session")

        if session_id:
            session = await self._load_owned(user_id, session_id)
            return session, False

        session = ChatSession(
            user_id=user_id,
            title=self.derive_title(first_message),
            metadata={AUTO_TITLE_KEY: True},
        )
        await self.store.create_session(session)
        logger.info(
            "Created session %s",
            session.session_id,
            extra={"user_id": user_id, "session_id": session.session_id},
        )
        return session, True

    async def retitle(self, session: ChatSession, latest_user_message: str) -> bool:
        """Regenerate the title of an auto-titled session and stamp ``updated_at``.

        Returns False without touching the store for user-titled sessions.
        """
        if not session.auto_titled:
            return False
        session.title = self.derive_title(latest_user_message)
        session.touch()
        await self.store.update_session(session)
        return True

    async def recent_history(
        self, session: ChatSession, limit: int | None = None
    ) -> list[ChatMessage]:
        """The newest ``limit`` messages of ``session``, oldest first."""
        if limit is None:
            limit = self.retrieval_config.history_fetch_limit
        return await self.store.recent_messages(session.session_id, session.user_id, limit)

    async def rename(self, user_id: str, session_id: str, title: str) -> ChatSession:
        """Apply a user-chosen title; the session stops being auto-titled."""
        title = title.strip()
        if not title:
            raise InvalidRequestError("Session title must not be empty")
        session = await self._load_owned(user_id, session_id)
        session.title = title
        session.metadata = {**session.metadata, AUTO_TITLE_KEY: False}
        session.touch()
        await self.store.update_session(session)
        return session

    async def list_sessions(self, user_id: str, limit: int = 50) -> list[SessionSummary]:
        if not user_id:
            raise UnauthorizedError("A user id is required to list sessions")
        return await self.store.list_sessions(user_id, limit)

    async def delete(self, user_id: str, session_id: str) -> bool:
        """Delete a session and its messages; ownership is enforced first."""
        await self._load_owned(user_id, session_id)
        deleted = await self.store.delete_session(session_id, user_id)
        if deleted:
            logger.info(
                "Deleted session %s",
                session_id,
                extra={"user_id": user_id, "session_id": session_id},
            )
        return deleted

    async def _load_owned(self, user_id: str, session_id: str) -> ChatSession:
        if not user_id:
            raise UnauthorizedError("A user id is required")
        session = await self.store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.user_id != user_id:
            logger.warning(
                "User %s attempted to access session %s",
                user_id,
                session_id,
                extra={"user_id": user_id, "session_id": session_id},
            )
            raise SessionNotOwnedError(session_id, user_id)
        return session
