"""Configuration constants for the mood-to-playlist engine."""
from __future__ import annotations

from pathlib import Path

# Emotion qualification
CAMERA_CONFIDENCE_THRESHOLD: float = 0.6
TEXT_CONFIDENCE: float = 0.9
VOICE_CONFIDENCE: float = 0.8

# Feedback persistence
FEEDBACK_STORAGE_KEY = "meloMoodFeedback"
DEFAULT_STORE_PATH = Path.home() / ".melomood" / "feedback.json"

# Context defaults
DEFAULT_PLATFORM = "Spotify"
DEFAULT_WEATHER = "Sunny"
TIME_OF_DAY_REFRESH_SECONDS: int = 60 * 60  # one hour
MORNING_END_HOUR: int = 12
AFTERNOON_END_HOUR: int = 18

# Inference provider
EMOTION_MODEL = "claude-3-5-sonnet-20241022"
RECOMMENDATION_MODEL = "claude-3-5-sonnet-20241022"
MAX_TOKENS: int = 1024
MAX_PROVIDER_RETRIES: int = 3
RETRYABLE_STATUS_CODES = {429, 500, 503}
PLAYLIST_LENGTH: int = 10

# Weather provider
GEOLOCATION_URL = "https://ipapi.co/json/"
WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
HTTP_TIMEOUT_SECONDS: float = 10.0

# WMO weather interpretation codes grouped by the coarse labels we expose
WEATHER_CODE_GROUPS = {
    "Sunny": {0, 1},
    "Cloudy": {2, 3, 45, 48},
    "Rainy": {51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82, 95, 96, 99},
    "Snowy": {71, 73, 75, 77, 85, 86},
}

# Platform search links
PLATFORM_SEARCH_URLS = {
    "Spotify": "https://open.spotify.com/search/{query}",
    "YouTube Music": "https://music.youtube.com/search?q={query}",
    "Apple Music": "https://music.apple.com/us/search?term={query}",
}

# User-facing messages
LOW_CONFIDENCE_MESSAGE = (
    "Could not confidently detect an emotion. Please try again with better lighting, "
    "or describe your mood in text."
)
ANALYSIS_ERROR_MESSAGE = "An error occurred while generating your playlist. Please try again."
