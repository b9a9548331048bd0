import asyncio
import json

from melomood import config, feedback
from melomood.feedback import FeedbackStore
from melomood.models import FeedbackHistory, FeedbackType, Song
from melomood.store import InMemoryStore

SONG_A = Song("Here Comes the Sun", "The Beatles", "Abbey Road")
SONG_B = Song("Holocene", "Bon Iver", "Bon Iver")


class BrokenStore:
    def __init__(self):
        self.writes = 0

    def get(self, key):
        raise OSError("disk unavailable")

    def set(self, key, value):
        self.writes += 1
        raise OSError("disk full")


def test_like_adds_song_and_second_like_toggles_it_off():
    history = feedback.record(FeedbackHistory.empty(), SONG_A, "like")
    assert history.liked == (SONG_A,)
    assert history.disliked == ()

    history = feedback.record(history, SONG_A, FeedbackType.LIKE)
    assert history.liked == ()
    assert history.disliked == ()


def test_like_then_dislike_moves_song_to_disliked_only():
    history = feedback.record(FeedbackHistory.empty(), SONG_A, "like")
    history = feedback.record(history, SONG_A, "dislike")
    assert history.disliked == (SONG_A,)
    assert not history.is_liked(SONG_A)


def test_dislike_then_like_moves_song_to_liked_only():
    history = feedback.record(FeedbackHistory.empty(), SONG_B, "dislike")
    history = feedback.record(history, SONG_B, "like")
    assert history.liked == (SONG_B,)
    assert history.disliked == ()


def test_identity_ignores_album_but_respects_case():
    history = feedback.record(FeedbackHistory.empty(), SONG_A, "like")
    other_album = Song(SONG_A.title, SONG_A.artist, "1 (Remastered)")
    assert feedback.record(history, other_album, "like").liked == ()

    lowercase = Song(SONG_A.title.lower(), SONG_A.artist, SONG_A.album)
    assert feedback.record(history, lowercase, "like").liked == (SONG_A, lowercase)


def test_record_preserves_order_of_other_songs():
    history = feedback.record(FeedbackHistory.empty(), SONG_A, "like")
    history = feedback.record(history, SONG_B, "like")
    assert history.liked == (SONG_A, SONG_B)
    history = feedback.record(history, SONG_A, "dislike")
    assert history.liked == (SONG_B,)
    assert history.disliked == (SONG_A,)


def test_clear_always_returns_empty_history():
    assert feedback.clear() == FeedbackHistory(liked=(), disliked=())
    assert FeedbackStore(InMemoryStore()).clear().is_empty()


def test_load_missing_value_returns_empty_history():
    assert FeedbackStore(InMemoryStore()).load() == FeedbackHistory.empty()


def test_load_malformed_value_returns_empty_history():
    store = InMemoryStore({config.FEEDBACK_STORAGE_KEY: "{not json"})
    assert FeedbackStore(store).load() == FeedbackHistory.empty()


def test_load_wrong_shape_returns_empty_history():
    store = InMemoryStore({config.FEEDBACK_STORAGE_KEY: json.dumps({"liked": "nope"})})
    assert FeedbackStore(store).load() == FeedbackHistory.empty()

    store = InMemoryStore({config.FEEDBACK_STORAGE_KEY: json.dumps({"liked": [{"title": "x"}]})})
    assert FeedbackStore(store).load() == FeedbackHistory.empty()


def test_load_deeply_nested_value_returns_empty_history():
    store = InMemoryStore({config.FEEDBACK_STORAGE_KEY: "[" * 100000 + "]" * 100000})
    assert FeedbackStore(store).load() == FeedbackHistory.empty()


def test_load_store_error_returns_empty_history():
    assert FeedbackStore(BrokenStore()).load() == FeedbackHistory.empty()


def test_load_repairs_duplicates_and_overlap():
    payload = {
        "liked": [SONG_A.to_dict(), SONG_A.to_dict()],
        "disliked": [SONG_A.to_dict(), SONG_B.to_dict()],
    }
    store = InMemoryStore({config.FEEDBACK_STORAGE_KEY: json.dumps(payload)})
    history = FeedbackStore(store).load()
    assert history.liked == (SONG_A,)
    assert history.disliked == (SONG_B,)


def test_save_then_load_uses_storage_key():
    store = InMemoryStore()
    feedback_store = FeedbackStore(store)
    history = feedback.record(FeedbackHistory.empty(), SONG_B, "dislike")

    assert asyncio.run(feedback_store.save(history)) is True
    assert json.loads(store.get("meloMoodFeedback")) == {
        "liked": [],
        "disliked": [{"title": "Holocene", "artist": "Bon Iver", "album": "Bon Iver"}],
    }
    assert feedback_store.load() == history


def test_save_failure_is_swallowed():
    broken = BrokenStore()
    result = asyncio.run(FeedbackStore(broken).save(FeedbackHistory.empty()))
    assert result is False
    assert broken.writes == 1


def test_concurrent_saves_persist_last_history():
    store = InMemoryStore()
    feedback_store = FeedbackStore(store)
    first = feedback.record(FeedbackHistory.empty(), SONG_A, "like")
    second = feedback.record(first, SONG_B, "like")

    async def _save_both():
        await asyncio.gather(feedback_store.save(first), feedback_store.save(second))

    asyncio.run(_save_both())
    assert feedback_store.load() == second
