"""Live collaborators: Claude for emotion and playlist inference, Open-Meteo for weather."""
from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import requests
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic
from jsonschema import ValidationError, validate

from . import config, env, utils
from .classifier import EmotionClassifier
from .context import ContextSettings
from .errors import ContextProviderFailure, ProviderError
from .feedback import FeedbackStore
from .models import Emotion, RecommendationContext, Song, Weather
from .recommender import RecommendationEngine
from .session import SessionController
from .store import JsonFileStore

logger = logging.getLogger(__name__)

EMOTION_LABELS = ", ".join(emotion.value for emotion in Emotion)

face_emotion_schema = {
    "type": "object",
    "properties": {
        "emotion": {"type": "string", "minLength": 1},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "required": ["emotion", "confidence"],
}

label_schema = {
    "type": "object",
    "properties": {"emotion": {"type": "string", "minLength": 1}},
    "required": ["emotion"],
}

playlist_schema = {
    "type": "object",
    "properties": {
        "songs": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string", "minLength": 1},
                    "artist": {"type": "string", "minLength": 1},
                    "album": {"type": "string"},
                },
                "required": ["title", "artist", "album"],
            },
        }
    },
    "required": ["songs"],
}


@dataclass
class ClaudeInferenceProvider:
    """Emotion and recommendation provider backed by Claude's Messages API."""

    api_key: str
    emotion_model: str = config.EMOTION_MODEL
    recommendation_model: str = config.RECOMMENDATION_MODEL
    max_retries: int = config.MAX_PROVIDER_RETRIES
    playlist_length: int = config.PLAYLIST_LENGTH
    retry_delay_seconds: float = 1.5
    client: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.client is None:
            self.client = AsyncAnthropic(api_key=self.api_key)

    # Emotion detection ------------------------------------------------------
    async def classify_face(self, image: Union[str, bytes]) -> Dict[str, Any]:
        try:
            media_type, data = utils.split_image_payload(image)
        except ValueError as error:
            raise ProviderError(str(error)) from error
        content = [
            {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}},
            {
                "type": "text",
                "text": (
                    "Read the facial expression of the main person in this image. "
                    f"Choose exactly one emotion from: {EMOTION_LABELS}. "
                    "Report how certain you are as a confidence between 0 and 1."
                ),
            },
        ]
        return await self._call_claude(
            model=self.emotion_model,
            system_prompt=(
                "You are an emotion recognition assistant. Respond using valid JSON with keys: "
                "emotion, confidence."
            ),
            content=content,
            schema=face_emotion_schema,
        )

    async def classify_text(self, text: str) -> str:
        response = await self._call_claude(
            model=self.emotion_model,
            system_prompt=(
                "You identify the emotion a person expresses in writing. "
                f"Choose exactly one of: {EMOTION_LABELS}. Respond with JSON containing an 'emotion' key."
            ),
            content=json.dumps({"text": text}),
            schema=label_schema,
        )
        return response["emotion"]

    async def classify_voice_description(self, text: str) -> str:
        response = await self._call_claude(
            model=self.emotion_model,
            system_prompt=(
                "You infer a speaker's emotion from a description of their tone of voice, pace and energy. "
                f"Choose exactly one of: {EMOTION_LABELS}. Respond with JSON containing an 'emotion' key."
            ),
            content=json.dumps({"vocal_description": text}),
            schema=label_schema,
        )
        return response["emotion"]

    # Recommendation ---------------------------------------------------------
    async def recommend(self, emotion: Emotion, context: RecommendationContext) -> List[Song]:
        payload = {
            "emotion": emotion.value,
            "context": context.to_dict(),
            "playlist_length": self.playlist_length,
            "instructions": (
                "Recommend songs available on the given platform that suit the emotion, the weather and "
                "the time of day. Lean towards the style of liked songs and away from disliked songs. "
                "Never include a disliked song."
            ),
        }
        response = await self._call_claude(
            model=self.recommendation_model,
            system_prompt=(
                "You are a music curator. Respond with JSON containing a 'songs' array whose items have "
                "keys: title, artist, album."
            ),
            content=json.dumps(payload),
            schema=playlist_schema,
        )
        return [Song.from_dict(item) for item in response["songs"]]

    # Internal helpers -------------------------------------------------------
    async def _call_claude(
        self,
        *,
        model: str,
        system_prompt: str,
        content: Union[str, List[Dict[str, Any]]],
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = await self.client.messages.create(
                    model=model,
                    system=system_prompt,
                    messages=[{"role": "user", "content": content}],
                    max_tokens=config.MAX_TOKENS,
                )
            except APIStatusError as error:
                last_error = error
                if error.status_code in config.RETRYABLE_STATUS_CODES and attempt + 1 < self.max_retries:
                    await asyncio.sleep(self.retry_delay_seconds * (attempt + 1))
                    continue
                break
            except APIConnectionError as error:
                # Covers timeouts as well.
                last_error = error
                logger.warning("claude_connection_failed", extra={"model": model, "attempt": attempt + 1})
                if attempt + 1 < self.max_retries:
                    await asyncio.sleep(self.retry_delay_seconds * (attempt + 1))
                continue

            text = "".join(
                block.text
                for block in response.content or []
                if getattr(block, "type", "") == "text" and getattr(block, "text", None)
            ).strip()
            try:
                if not text:
                    raise ValueError("Claude response contained no text content")
                data = utils.extract_json(text)
                validate(instance=data, schema=schema)
                return data
            except (ValueError, ValidationError) as error:
                last_error = error
                logger.warning("claude_response_invalid", extra={"model": model, "attempt": attempt + 1})
        raise ProviderError(f"Claude call failed after {self.max_retries} attempts: {last_error}")


class OpenMeteoWeatherProvider:
    """Weather lookup via Open-Meteo, locating the user by coordinates or IP address."""

    def __init__(
        self,
        *,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        session: Optional[requests.Session] = None,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.session = session or requests.Session()
        self.timeout = timeout

    async def fetch_by_location(self) -> Weather:
        return await asyncio.to_thread(self._fetch)

    def _fetch(self) -> Weather:
        latitude, longitude = self._locate()
        try:
            response = self.session.get(
                config.WEATHER_URL,
                params={"latitude": latitude, "longitude": longitude, "current_weather": "true"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            code = response.json()["current_weather"]["weathercode"]
        except (requests.RequestException, KeyError, TypeError, ValueError) as error:
            raise ContextProviderFailure(f"Could not fetch weather: {error}") from error
        return weather_from_code(code)

    def _locate(self) -> tuple:
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        try:
            response = self.session.get(config.GEOLOCATION_URL, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
            return float(payload["latitude"]), float(payload["longitude"])
        except (requests.RequestException, KeyError, TypeError, ValueError) as error:
            raise ContextProviderFailure(f"Could not determine your location: {error}") from error


def weather_from_code(code: Any) -> Weather:
    """Map a WMO weather interpretation code onto the coarse weather labels."""

    try:
        numeric = int(code)
    except (TypeError, ValueError) as error:
        raise ContextProviderFailure(f"Unrecognised weather code {code!r}") from error
    for label, codes in config.WEATHER_CODE_GROUPS.items():
        if numeric in codes:
            return Weather(label)
    raise ContextProviderFailure(f"Unrecognised weather code {code!r}")


def build_live_clients(
    *,
    store_path: Optional[str] = None,
    emotion_model: str = config.EMOTION_MODEL,
    recommendation_model: str = config.RECOMMENDATION_MODEL,
) -> Dict[str, Any]:
    """Factory helper that wires the live providers and feedback store from .env settings."""

    env.load_env()
    keys = env.require(["ANTHROPIC_API_KEY"])

    inference = ClaudeInferenceProvider(
        api_key=keys["ANTHROPIC_API_KEY"],
        emotion_model=emotion_model,
        recommendation_model=recommendation_model,
    )
    weather = OpenMeteoWeatherProvider(
        latitude=env.optional_float("MELOMOOD_LATITUDE"),
        longitude=env.optional_float("MELOMOOD_LONGITUDE"),
    )
    path = store_path or os.environ.get("MELOMOOD_STORE_PATH") or config.DEFAULT_STORE_PATH
    return {
        "emotion_provider": inference,
        "recommendation_provider": inference,
        "weather_provider": weather,
        "feedback_store": FeedbackStore(JsonFileStore(path)),
    }


def build_session_controller(clients: Dict[str, Any]) -> SessionController:
    """Wire a controller from :func:`build_live_clients` output and load saved feedback."""

    controller = SessionController(
        classifier=EmotionClassifier(clients["emotion_provider"]),
        engine=RecommendationEngine(clients["recommendation_provider"]),
        feedback_store=clients["feedback_store"],
        settings=ContextSettings(),
    )
    controller.start()
    return controller
