"""Local-only log of answered questions.

Sessions are stored newest first in one JSON array and trimmed to the most
recent ``max_sessions`` on every insert. Nothing here leaves the device.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from whisper_store.core import keys
from whisper_store.core.settings import settings
from whisper_store.db.kv_store import KeyValueStore
from whisper_store.db.time import now_ms
from whisper_store.schemas.sessions import QAMode, QASession, SessionStats
from whisper_store.services.json_slot import JsonSlot

logger = logging.getLogger(__name__)


def generate_session_id(timestamp: int) -> str:
    return f"qa_{timestamp}_{secrets.token_hex(4)}"


class SessionLog:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_sessions: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._slot: JsonSlot[list[Any]] = JsonSlot(
            store, keys.QA_SESSIONS, list, expected_type=list
        )
        self.max_sessions = settings.qa_sessions_max if max_sessions is None else max_sessions
        self._clock = clock

    @staticmethod
    def _parse(items: list[Any]) -> list[QASession]:
        sessions: list[QASession] = []
        for item in items:
            try:
                sessions.append(QASession.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed QA session: %s", exc)
        return sessions

    @staticmethod
    def _dump(sessions: list[QASession]) -> list[dict[str, Any]]:
        return [session.model_dump(by_alias=True, exclude_none=True) for session in sessions]

    async def _load(self) -> list[QASession]:
        return self._parse(await self._slot.read())

    async def log_session(
        self,
        conversation_id: str,
        question: str,
        answer: str,
        mode: QAMode,
        source_count: int,
        duration: int | None = None,
    ) -> str:
        """Record a session at the head of the log and return its id."""
        timestamp = self._clock()
        session = QASession(
            id=generate_session_id(timestamp),
            conversation_id=conversation_id,
            question=question,
            answer=answer,
            mode=mode,
            source_count=source_count,
            timestamp=timestamp,
            duration=duration,
        )

        def prepend(items: list[Any]) -> list[Any]:
            sessions = [session, *self._parse(items)]
            return self._dump(sessions[: self.max_sessions])

        await self._slot.mutate(prepend)
        return session.id

    async def get_conversation_sessions(self, conversation_id: str) -> list[QASession]:
        return [s for s in await self._load() if s.conversation_id == conversation_id]

    async def get_recent_sessions(
        self, conversation_id: str, limit: int = 10
    ) -> list[QASession]:
        return (await self.get_conversation_sessions(conversation_id))[:limit]

    async def get_session(self, session_id: str) -> QASession | None:
        for session in await self._load():
            if session.id == session_id:
                return session
        return None

    async def clear_all_sessions(self) -> bool:
        return await self._slot.remove()

    async def clear_conversation_sessions(self, conversation_id: str) -> bool:
        def drop(items: list[Any]) -> list[Any]:
            return self._dump(
                [s for s in self._parse(items) if s.conversation_id != conversation_id]
            )

        return await self._slot.mutate(drop)

    async def get_session_stats(self) -> SessionStats:
        """Counts by mode; the average covers only sessions with a duration."""
        sessions = await self._load()
        durations = [s.duration for s in sessions if s.duration is not None]
        return SessionStats(
            total=len(sessions),
            template_count=sum(1 for s in sessions if s.mode == "template"),
            llm_count=sum(1 for s in sessions if s.mode == "llm"),
            avg_duration=sum(durations) / len(durations) if durations else 0.0,
        )


__all__ = ["SessionLog", "generate_session_id"]
