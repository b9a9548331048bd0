"""Playlist recommendation through the external inference provider."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence, Tuple, Union

from .errors import RecommendationFailure
from .models import Emotion, RecommendationContext, Song

logger = logging.getLogger(__name__)


class RecommendationProviderProtocol(Protocol):
    """Provider that owns ranking; liked/disliked songs travel inside the context."""

    async def recommend(
        self, emotion: Emotion, context: RecommendationContext
    ) -> Sequence[Union[Song, Mapping[str, Any]]]:
        ...


class RecommendationEngine:
    def __init__(self, provider: RecommendationProviderProtocol) -> None:
        self.provider = provider

    async def recommend(self, emotion: Emotion, context: RecommendationContext) -> Tuple[Song, ...]:
        """Return the provider's playlist in provider order, or raise RecommendationFailure."""

        try:
            raw_songs = await self.provider.recommend(emotion, context)
        except Exception as error:
            logger.error("recommendation_provider_failed", extra={"emotion": emotion.value, "error": str(error)})
            raise RecommendationFailure(reason=str(error)) from error

        if raw_songs is None or isinstance(raw_songs, (str, bytes, Mapping)):
            raise RecommendationFailure(reason=f"provider returned {type(raw_songs).__name__}, expected a list")
        try:
            playlist = tuple(item if isinstance(item, Song) else Song.from_dict(item) for item in raw_songs)
        except (TypeError, ValueError) as error:
            raise RecommendationFailure(reason=f"malformed song in playlist: {error}") from error

        logger.debug("recommendation_received", extra={"emotion": emotion.value, "songs": len(playlist)})
        return playlist
