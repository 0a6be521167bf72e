"""Per-session summarization feedback storage.

The core never evicts on its own: whoever owns session lifecycle calls
``prune`` with the set of sessions that are still active.
"""

import threading
from collections.abc import Iterable
from typing import Protocol

from sop_engine.core.config import get_settings
from sop_engine.core.logging import get_logger
from sop_engine.core.schemas_summary import SummarizationFeedback

logger = get_logger(__name__)


class FeedbackStore(Protocol):
    def get(self, session_id: str) -> list[SummarizationFeedback]: ...

    def put(self, session_id: str, feedback: SummarizationFeedback) -> None: ...

    def delete(self, session_id: str) -> None: ...

    def prune(self, active_session_ids: Iterable[str]) -> int: ...


class InMemoryFeedbackStore:
    """Dict-backed store keeping the most recent ``history_limit`` entries per session."""

    def __init__(self, history_limit: int | None = None):
        if history_limit is None:
            history_limit = get_settings().SOP_FEEDBACK_HISTORY_LIMIT
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.history_limit = history_limit
        self._entries: dict[str, list[SummarizationFeedback]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> list[SummarizationFeedback]:
        with self._lock:
            return list(self._entries.get(session_id, []))

    def put(self, session_id: str, feedback: SummarizationFeedback) -> None:
        with self._lock:
            history = self._entries.setdefault(session_id, [])
            history.append(feedback)
            if len(history) > self.history_limit:
                del history[: len(history) - self.history_limit]

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def prune(self, active_session_ids: Iterable[str]) -> int:
        """Drop every session not in ``active_session_ids``. Returns how many were dropped."""
        active = set(active_session_ids)
        with self._lock:
            stale = [sid for sid in self._entries if sid not in active]
            for sid in stale:
                del self._entries[sid]

        if stale:
            logger.info(f"Pruned feedback for {len(stale)} inactive sessions")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
