"""Domain models for the mood-to-playlist engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


class Emotion(str, Enum):
    HAPPY = "Happy"
    SAD = "Sad"
    ANGRY = "Angry"
    FEAR = "Fear"
    SURPRISE = "Surprise"
    EXCITED = "Excited"
    NEUTRAL = "Neutral"
    CALM = "Calm"
    CONTENT = "Content"
    ENERGETIC = "Energetic"
    THOUGHTFUL = "Thoughtful"

    @classmethod
    def from_label(cls, label: Any) -> "Emotion":
        """Parse a provider label; matching ignores surrounding whitespace and case."""

        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            raise ValueError(f"Emotion label must be a string, got {type(label).__name__}")
        wanted = label.strip().casefold()
        for member in cls:
            if member.value.casefold() == wanted:
                return member
        raise ValueError(f"Unknown emotion label: {label!r}")


class Platform(str, Enum):
    SPOTIFY = "Spotify"
    YOUTUBE_MUSIC = "YouTube Music"
    APPLE_MUSIC = "Apple Music"


class Weather(str, Enum):
    SUNNY = "Sunny"
    CLOUDY = "Cloudy"
    RAINY = "Rainy"
    SNOWY = "Snowy"


class Modality(str, Enum):
    CAMERA = "camera"
    TEXT = "text"
    VOICE = "voice"


class FeedbackType(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class SessionStep(str, Enum):
    INPUT = "input"
    ANALYZING = "analyzing"
    RESULT = "result"


@dataclass(frozen=True)
class Song:
    """A recommended track. Identity is title plus artist; album is informational."""

    title: str
    artist: str
    album: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.title, self.artist)

    def same_track(self, other: "Song") -> bool:
        return self.key == other.key

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Song":
        if not isinstance(payload, Mapping):
            raise TypeError(f"Song payload must be a mapping, got {type(payload).__name__}")
        title = payload.get("title")
        artist = payload.get("artist")
        album = payload.get("album", "")
        if not isinstance(title, str) or not isinstance(artist, str):
            raise ValueError(f"Song payload requires string title and artist: {dict(payload)!r}")
        return cls(title=title, artist=artist, album=_album_text(album))

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "artist": self.artist, "album": self.album}


@dataclass(frozen=True)
class FeedbackHistory:
    """Liked and disliked songs; a track lives in at most one of the two lists."""

    liked: Tuple[Song, ...] = ()
    disliked: Tuple[Song, ...] = ()

    @classmethod
    def empty(cls) -> "FeedbackHistory":
        return cls()

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FeedbackHistory":
        """Build a history from its serialized form, enforcing the list invariants."""

        if not isinstance(payload, Mapping):
            raise TypeError(f"Feedback payload must be a mapping, got {type(payload).__name__}")

        def _songs(key: str) -> List[Song]:
            raw = payload.get(key, [])
            if not isinstance(raw, list):
                raise TypeError(f"Feedback bucket '{key}' must be a list")
            return [Song.from_dict(item) for item in raw]

        liked = _dedupe(_songs("liked"))
        liked_keys = {song.key for song in liked}
        disliked = [song for song in _dedupe(_songs("disliked")) if song.key not in liked_keys]
        return cls(liked=tuple(liked), disliked=tuple(disliked))

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            "liked": [song.to_dict() for song in self.liked],
            "disliked": [song.to_dict() for song in self.disliked],
        }

    def is_liked(self, song: Song) -> bool:
        return any(item.same_track(song) for item in self.liked)

    def is_disliked(self, song: Song) -> bool:
        return any(item.same_track(song) for item in self.disliked)

    def is_empty(self) -> bool:
        return not self.liked and not self.disliked


@dataclass(frozen=True)
class EmotionResult:
    emotion: Emotion
    confidence: float


@dataclass(frozen=True)
class RecommendationContext:
    """Snapshot of the non-emotion signals sent with a recommendation request."""

    platform: Platform
    weather: Weather
    time_of_day: str
    feedback_history: FeedbackHistory = field(default_factory=FeedbackHistory)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform.value,
            "weather": self.weather.value,
            "time_of_day": self.time_of_day,
            "feedback_history": self.feedback_history.to_dict(),
        }


@dataclass(frozen=True)
class InputState:
    error: Optional[str] = None

    @property
    def step(self) -> SessionStep:
        return SessionStep.INPUT


@dataclass(frozen=True)
class AnalyzingState:
    modality: Modality

    @property
    def step(self) -> SessionStep:
        return SessionStep.ANALYZING


@dataclass(frozen=True)
class ResultState:
    emotion: Emotion
    playlist: Tuple[Song, ...]
    search_query: str = ""

    @property
    def step(self) -> SessionStep:
        return SessionStep.RESULT


SessionState = Union[InputState, AnalyzingState, ResultState]


def _dedupe(songs: Iterable[Song]) -> List[Song]:
    seen = set()
    unique: List[Song] = []
    for song in songs:
        if song.key in seen:
            continue
        seen.add(song.key)
        unique.append(song)
    return unique


def _album_text(album: Any) -> str:
    if album is None:
        return ""
    return album if isinstance(album, str) else str(album)
