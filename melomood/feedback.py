"""Feedback history persistence and like/dislike bookkeeping."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional, Union

from . import config
from .errors import PersistenceFailure
from .models import FeedbackHistory, FeedbackType, Song
from .store import DurableStoreProtocol

logger = logging.getLogger(__name__)


def record(history: FeedbackHistory, song: Song, feedback: Union[FeedbackType, str]) -> FeedbackHistory:
    """Return a new history with ``feedback`` applied to ``song``.

    The opposite bucket always loses the song. The target bucket toggles: a
    song already present is removed, otherwise it is appended.
    """

    feedback = FeedbackType(feedback)
    if feedback is FeedbackType.LIKE:
        target, opposite = list(history.liked), list(history.disliked)
    else:
        target, opposite = list(history.disliked), list(history.liked)

    opposite = _without(opposite, song)
    if any(item.same_track(song) for item in target):
        target = _without(target, song)
    else:
        target.append(song)

    if feedback is FeedbackType.LIKE:
        return FeedbackHistory(liked=tuple(target), disliked=tuple(opposite))
    return FeedbackHistory(liked=tuple(opposite), disliked=tuple(target))


def clear() -> FeedbackHistory:
    return FeedbackHistory.empty()


class FeedbackStore:
    """Loads and persists the feedback history through a durable key-value store."""

    def __init__(self, store: DurableStoreProtocol, *, key: str = config.FEEDBACK_STORAGE_KEY) -> None:
        self.store = store
        self.key = key
        self._save_lock: Optional[asyncio.Lock] = None
        self._save_loop: Optional[asyncio.AbstractEventLoop] = None

    def load(self) -> FeedbackHistory:
        """Read the persisted history. Missing or unreadable data yields an empty history."""

        try:
            raw = self.store.get(self.key)
        except Exception as error:
            logger.error("feedback_load_failed", extra={"key": self.key, "error": str(error)})
            return FeedbackHistory.empty()
        if raw is None:
            return FeedbackHistory.empty()
        try:
            return FeedbackHistory.from_dict(json.loads(raw))
        except (ValueError, TypeError, RecursionError) as error:
            logger.error("feedback_parse_failed", extra={"key": self.key, "error": str(error)})
            return FeedbackHistory.empty()

    async def save(self, history: FeedbackHistory) -> bool:
        """Persist ``history``. Returns False when the write failed; never raises."""

        loop = asyncio.get_running_loop()
        if self._save_lock is None or self._save_loop is not loop:
            self._save_lock, self._save_loop = asyncio.Lock(), loop
        async with self._save_lock:
            try:
                await asyncio.to_thread(self._write, history)
            except PersistenceFailure as error:
                logger.error("feedback_save_failed", extra={"key": self.key, "error": str(error)})
                return False
        return True

    def record(self, history: FeedbackHistory, song: Song, feedback: Union[FeedbackType, str]) -> FeedbackHistory:
        return record(history, song, feedback)

    def clear(self) -> FeedbackHistory:
        return clear()

    def _write(self, history: FeedbackHistory) -> None:
        payload = json.dumps(history.to_dict())
        try:
            self.store.set(self.key, payload)
        except Exception as error:
            raise PersistenceFailure(f"Could not save feedback history: {error}") from error


def _without(songs: List[Song], song: Song) -> List[Song]:
    return [item for item in songs if not item.same_track(song)]
