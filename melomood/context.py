"""Recommendation context assembly and the settings it is assembled from."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol, Union

from . import config
from .errors import ContextProviderFailure
from .models import FeedbackHistory, Platform, RecommendationContext, Weather

logger = logging.getLogger(__name__)


class WeatherProviderProtocol(Protocol):
    """Resolves the current weather for the user's location."""

    async def fetch_by_location(self) -> Weather:
        ...


def assemble(
    platform: Platform,
    weather: Weather,
    time_of_day: str,
    feedback_history: FeedbackHistory,
) -> RecommendationContext:
    return RecommendationContext(
        platform=platform,
        weather=weather,
        time_of_day=time_of_day,
        feedback_history=feedback_history,
    )


def time_of_day(hour: int) -> str:
    if hour < config.MORNING_END_HOUR:
        return "Morning"
    if hour < config.AFTERNOON_END_HOUR:
        return "Afternoon"
    return "Evening"


def current_time_of_day(now: Optional[datetime] = None) -> str:
    """Time-of-day label for ``now`` (defaults to the local wall clock)."""

    moment = now or datetime.now()
    return time_of_day(moment.hour)


class ContextSettings:
    """Mutable platform, weather and time-of-day settings.

    Weather carries its provenance: ``weather_auto`` is True while the value
    comes from the weather provider and False once the user picked it or the
    lookup failed. A failed lookup leaves the previous weather in place and
    exposes the reason as ``weather_error``.
    """

    def __init__(
        self,
        *,
        platform: Union[Platform, str] = config.DEFAULT_PLATFORM,
        weather: Union[Weather, str] = config.DEFAULT_WEATHER,
        now: Optional[datetime] = None,
    ) -> None:
        self.platform = Platform(platform)
        self.weather = Weather(weather)
        self.weather_auto = True
        self.weather_loading = False
        self.weather_error: Optional[str] = None
        self.time_of_day = current_time_of_day(now)

    def set_platform(self, platform: Union[Platform, str]) -> None:
        self.platform = Platform(platform)

    def set_weather_manually(self, weather: Union[Weather, str]) -> None:
        self.weather = Weather(weather)
        self.weather_auto = False

    def switch_to_manual_weather(self) -> None:
        self.weather_auto = False

    def refresh_time_of_day(self, now: Optional[datetime] = None) -> str:
        self.time_of_day = current_time_of_day(now)
        return self.time_of_day

    async def keep_time_of_day_fresh(
        self, interval_seconds: float = config.TIME_OF_DAY_REFRESH_SECONDS
    ) -> None:
        """Recompute the time of day forever; run as a background task and cancel to stop."""

        while True:
            await asyncio.sleep(interval_seconds)
            self.refresh_time_of_day()

    async def refresh_weather(self, provider: WeatherProviderProtocol) -> Weather:
        """Ask ``provider`` for the local weather, falling back to manual mode on failure."""

        self.weather_loading = True
        self.weather_error = None
        self.weather_auto = True
        try:
            detected = await provider.fetch_by_location()
            self.weather = Weather(detected)
        except Exception as error:
            failure = ContextProviderFailure(str(error) or "An unknown error occurred.")
            logger.warning("weather_lookup_failed", extra={"error": str(failure)})
            self.weather_error = str(failure)
            self.weather_auto = False
        finally:
            self.weather_loading = False
        return self.weather

    def snapshot(self, feedback_history: FeedbackHistory) -> RecommendationContext:
        return assemble(self.platform, self.weather, self.time_of_day, feedback_history)

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "weather": self.weather.value,
            "weather_auto": self.weather_auto,
            "weather_loading": self.weather_loading,
            "weather_error": self.weather_error,
            "time_of_day": self.time_of_day,
        }
