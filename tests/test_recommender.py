import asyncio

import pytest

from melomood.errors import RecommendationFailure
from melomood.models import Emotion, FeedbackHistory, Platform, RecommendationContext, Song, Weather
from melomood.recommender import RecommendationEngine

CONTEXT = RecommendationContext(
    platform=Platform.SPOTIFY,
    weather=Weather.RAINY,
    time_of_day="Evening",
    feedback_history=FeedbackHistory(
        liked=(Song("Liked", "Someone", "LP"),),
        disliked=(Song("Disliked", "Another", "EP"),),
    ),
)


class FakeRecommendationProvider:
    def __init__(self, songs=None, error=None):
        self.songs = songs
        self.error = error
        self.received = []

    async def recommend(self, emotion, context):
        self.received.append((emotion, context))
        if self.error:
            raise self.error
        return self.songs


def test_passes_context_through_and_keeps_order():
    songs = [
        {"title": "B Side", "artist": "Zed", "album": "Z"},
        Song("A Side", "Amy", "A"),
    ]
    provider = FakeRecommendationProvider(songs=songs)
    playlist = asyncio.run(RecommendationEngine(provider).recommend(Emotion.SAD, CONTEXT))

    assert playlist == (Song("B Side", "Zed", "Z"), Song("A Side", "Amy", "A"))
    assert provider.received == [(Emotion.SAD, CONTEXT)]
    assert provider.received[0][1] is CONTEXT


def test_provider_error_is_single_failure():
    provider = FakeRecommendationProvider(error=TimeoutError("slow"))
    with pytest.raises(RecommendationFailure):
        asyncio.run(RecommendationEngine(provider).recommend(Emotion.HAPPY, CONTEXT))


def test_malformed_song_fails_whole_playlist():
    provider = FakeRecommendationProvider(songs=[{"title": "Ok", "artist": "Fine"}, {"title": "No artist"}])
    with pytest.raises(RecommendationFailure):
        asyncio.run(RecommendationEngine(provider).recommend(Emotion.HAPPY, CONTEXT))


@pytest.mark.parametrize("payload", [None, "songs", {"songs": []}])
def test_non_list_payload_fails(payload):
    provider = FakeRecommendationProvider(songs=payload)
    with pytest.raises(RecommendationFailure):
        asyncio.run(RecommendationEngine(provider).recommend(Emotion.HAPPY, CONTEXT))


def test_missing_album_defaults_to_empty():
    provider = FakeRecommendationProvider(songs=[{"title": "Song", "artist": "Artist"}])
    playlist = asyncio.run(RecommendationEngine(provider).recommend(Emotion.CALM, CONTEXT))
    assert playlist[0].album == ""
