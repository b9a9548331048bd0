"""Error taxonomy for the orchestration engine."""
from __future__ import annotations

from . import config


class MeloMoodError(Exception):
    """Base class for engine errors."""


class ClassificationFailure(MeloMoodError):
    """Emotion could not be detected or was rejected by the confidence gate."""

    def __init__(self, user_message: str = config.LOW_CONFIDENCE_MESSAGE, *, reason: str = "") -> None:
        super().__init__(reason or user_message)
        self.user_message = user_message
        self.reason = reason


class RecommendationFailure(MeloMoodError):
    """The recommendation provider failed or returned an unusable playlist."""

    def __init__(self, user_message: str = config.ANALYSIS_ERROR_MESSAGE, *, reason: str = "") -> None:
        super().__init__(reason or user_message)
        self.user_message = user_message
        self.reason = reason


class PersistenceFailure(MeloMoodError):
    """Durable store read or write error. Always handled inside the feedback store."""


class ContextProviderFailure(MeloMoodError):
    """Weather lookup failed; callers downgrade to manual weather."""


class ProviderError(MeloMoodError):
    """A live inference provider call failed or returned an invalid payload."""


class SessionStateError(RuntimeError):
    """Operation is not valid in the current session step."""
