"""Session state machine driving input -> analyzing -> result."""
from __future__ import annotations

import logging
from typing import Any, Optional, Tuple, Union

from . import config, feedback
from .classifier import EmotionClassifier
from .context import ContextSettings
from .errors import ClassificationFailure, RecommendationFailure, SessionStateError
from .feedback import FeedbackStore
from .models import (
    AnalyzingState,
    Emotion,
    FeedbackHistory,
    FeedbackType,
    InputState,
    Modality,
    ResultState,
    SessionState,
    SessionStep,
    Song,
)
from .recommender import RecommendationEngine

logger = logging.getLogger(__name__)


class SessionController:
    """Orchestrates one user session.

    ``submit`` runs a full analysis cycle: classify the input, snapshot the
    context once, request a playlist and land in either Result or back in
    Input with an error. Only one cycle may run at a time; submissions that
    arrive while not in Input are ignored.

    Feedback history is loaded by :meth:`start` and persisted after every
    mutation. Persistence problems are logged by the feedback store and never
    surface here.
    """

    def __init__(
        self,
        classifier: EmotionClassifier,
        engine: RecommendationEngine,
        feedback_store: FeedbackStore,
        settings: Optional[ContextSettings] = None,
        *,
        input_mode: Union[Modality, str] = Modality.CAMERA,
    ) -> None:
        self.classifier = classifier
        self.engine = engine
        self.feedback_store = feedback_store
        self.settings = settings or ContextSettings()
        self.input_mode = Modality(input_mode)
        self._state: SessionState = InputState()
        self._history = FeedbackHistory.empty()

    def start(self) -> FeedbackHistory:
        self._history = self.feedback_store.load()
        logger.info(
            "session_started",
            extra={"liked": len(self._history.liked), "disliked": len(self._history.disliked)},
        )
        return self._history

    # Read accessors ---------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def step(self) -> SessionStep:
        return self._state.step

    @property
    def emotion(self) -> Optional[Emotion]:
        return self._state.emotion if isinstance(self._state, ResultState) else None

    @property
    def playlist(self) -> Tuple[Song, ...]:
        return self._state.playlist if isinstance(self._state, ResultState) else ()

    @property
    def error(self) -> Optional[str]:
        return self._state.error if isinstance(self._state, InputState) else None

    @property
    def search_query(self) -> str:
        return self._state.search_query if isinstance(self._state, ResultState) else ""

    @property
    def feedback_history(self) -> FeedbackHistory:
        return self._history

    def is_liked(self, song: Song) -> bool:
        return self._history.is_liked(song)

    def is_disliked(self, song: Song) -> bool:
        return self._history.is_disliked(song)

    # Transitions ------------------------------------------------------------
    def set_input_mode(self, modality: Union[Modality, str]) -> None:
        self._require(InputState, "switch input mode")
        self.input_mode = Modality(modality)

    async def submit(self, modality: Union[Modality, str, None], data: Any) -> SessionState:
        """Run one analysis cycle for ``data`` captured through ``modality``."""

        modality = Modality(modality) if modality is not None else self.input_mode
        if not isinstance(self._state, InputState):
            logger.warning(
                "submission_ignored",
                extra={"step": self._state.step.value, "modality": modality.value},
            )
            return self._state

        self.input_mode = modality
        self._state = AnalyzingState(modality=modality)

        try:
            result = await self.classifier.classify(modality, data)
            context = self.settings.snapshot(self._history)
            playlist = await self.engine.recommend(result.emotion, context)
        except ClassificationFailure as failure:
            logger.info("classification_failed", extra={"modality": modality.value, "reason": failure.reason})
            self._state = InputState(error=failure.user_message)
            return self._state
        except RecommendationFailure as failure:
            self._state = InputState(error=failure.user_message)
            return self._state
        except Exception:
            logger.exception("analysis_failed", extra={"modality": modality.value})
            self._state = InputState(error=config.ANALYSIS_ERROR_MESSAGE)
            return self._state
        else:
            self._state = ResultState(emotion=result.emotion, playlist=playlist)
            logger.info(
                "analysis_complete",
                extra={
                    "modality": modality.value,
                    "emotion": result.emotion.value,
                    "confidence": result.confidence,
                    "songs": len(playlist),
                },
            )
            return self._state
        finally:
            # A cancelled cycle must not leave the session stuck in Analyzing.
            if isinstance(self._state, AnalyzingState):
                logger.warning("analysis_interrupted", extra={"modality": modality.value})
                self._state = InputState(error=config.ANALYSIS_ERROR_MESSAGE)

    def reset(self) -> SessionState:
        if isinstance(self._state, AnalyzingState):
            logger.warning("reset_ignored", extra={"step": self._state.step.value})
            return self._state
        self._state = InputState()
        return self._state

    def set_search_query(self, query: str) -> ResultState:
        state = self._require(ResultState, "search the playlist")
        self._state = ResultState(emotion=state.emotion, playlist=state.playlist, search_query=query)
        return self._state

    def filtered_playlist(self) -> Tuple[Song, ...]:
        """Playlist entries matching the current search query on title, artist or album."""

        needle = self.search_query.strip().casefold()
        if not needle:
            return self.playlist
        return tuple(
            song
            for song in self.playlist
            if needle in song.title.casefold()
            or needle in song.artist.casefold()
            or needle in song.album.casefold()
        )

    # Feedback ---------------------------------------------------------------
    async def give_feedback(self, song: Song, feedback_type: Union[FeedbackType, str]) -> FeedbackHistory:
        self._require(ResultState, "give feedback")
        feedback_type = FeedbackType(feedback_type)
        history = feedback.record(self._history, song, feedback_type)
        self._history = history
        logger.info(
            "feedback_recorded",
            extra={"title": song.title, "artist": song.artist, "feedback": feedback_type.value},
        )
        await self.feedback_store.save(history)
        return history

    async def clear_feedback(self) -> FeedbackHistory:
        history = feedback.clear()
        self._history = history
        await self.feedback_store.save(history)
        return history

    def _require(self, state_type: type, action: str) -> Any:
        if not isinstance(self._state, state_type):
            raise SessionStateError(f"Cannot {action} while {self._state.step.value}")
        return self._state
