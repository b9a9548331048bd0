#!/usr/bin/env python3
"""Run one mood analysis cycle against the live providers."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from melomood import env, services, utils
from melomood.models import FeedbackType, Modality, Platform, ResultState, Weather
from melomood.session import SessionController


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Detect a mood and fetch a matching playlist using the live Claude and weather APIs.",
    )
    parser.add_argument(
        "--mode",
        choices=[modality.value for modality in Modality],
        default=Modality.TEXT.value,
        help="Input modality (default: text).",
    )
    parser.add_argument(
        "input",
        help="Free text, a description of your voice, or (camera mode) a path to an image file.",
    )
    parser.add_argument(
        "--platform",
        choices=[platform.value for platform in Platform],
        default=Platform.SPOTIFY.value,
    )
    parser.add_argument(
        "--weather",
        choices=[weather.value for weather in Weather],
        help="Set the weather manually instead of detecting it from your location.",
    )
    parser.add_argument(
        "--like",
        type=int,
        action="append",
        default=[],
        help="1-based playlist position to like after the result arrives (repeatable).",
    )
    parser.add_argument(
        "--dislike",
        type=int,
        action="append",
        default=[],
        help="1-based playlist position to dislike after the result arrives (repeatable).",
    )
    parser.add_argument(
        "--clear-feedback",
        action="store_true",
        help="Forget all stored likes and dislikes before analysing.",
    )
    parser.add_argument(
        "--json",
        type=Path,
        help="Optional path to write the playlist and context as JSON.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log engine events to stderr.")
    return parser.parse_args(list(argv))


def load_input(mode: str, raw: str) -> object:
    if mode == Modality.CAMERA.value:
        return Path(raw).read_bytes()
    return raw


async def run_cycle(args: argparse.Namespace, controller: SessionController, weather_provider) -> int:
    settings = controller.settings
    settings.set_platform(args.platform)
    if args.clear_feedback:
        await controller.clear_feedback()

    print("[2/4] Resolving context...", flush=True)
    if args.weather:
        settings.set_weather_manually(args.weather)
    else:
        await settings.refresh_weather(weather_provider)
        if settings.weather_error:
            print(f"      Weather lookup failed ({settings.weather_error}); using {settings.weather.value}.")
    print(
        f"[2/4] platform={settings.platform.value} weather={settings.weather.value} "
        f"({'auto' if settings.weather_auto else 'manual'}) time={settings.time_of_day}\n",
        flush=True,
    )

    print("[3/4] Analysing mood and requesting playlist...", flush=True)
    state = await controller.submit(args.mode, load_input(args.mode, args.input))
    if not isinstance(state, ResultState):
        print(f"Analysis failed: {controller.error}", file=sys.stderr)
        return 1
    print(f"[3/4] Detected emotion: {state.emotion.value}\n", flush=True)

    print("[4/4] Playlist:")
    for position, song in enumerate(state.playlist, start=1):
        print(f" {position:2d}. {song.title} - {song.artist} ({song.album})")
        print(f"     {utils.search_url(song, settings.platform)}")

    for feedback_type, positions in ((FeedbackType.LIKE, args.like), (FeedbackType.DISLIKE, args.dislike)):
        for position in positions:
            if not 1 <= position <= len(state.playlist):
                print(f"Ignoring out of range position {position}", file=sys.stderr)
                continue
            await controller.give_feedback(state.playlist[position - 1], feedback_type)

    history = controller.feedback_history
    print(f"\nFeedback history: {len(history.liked)} liked, {len(history.disliked)} disliked.")

    if args.json:
        args.json.write_text(
            json.dumps(
                {
                    "emotion": state.emotion.value,
                    "playlist": [song.to_dict() for song in state.playlist],
                    "context": settings.to_dict(),
                    "feedback": history.to_dict(),
                },
                indent=2,
            )
        )
    return 0


def main(argv: Iterable[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("[1/4] Loading environment configuration...", flush=True)
    env.load_env()
    try:
        clients = services.build_live_clients()
    except RuntimeError as exc:
        print(f"Environment not configured correctly: {exc}", file=sys.stderr)
        return 1
    controller = services.build_session_controller(clients)
    print("[1/4] Environment ready.\n", flush=True)

    try:
        return asyncio.run(run_cycle(args, controller, clients["weather_provider"]))
    except OSError as exc:
        print(f"Could not read input: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
