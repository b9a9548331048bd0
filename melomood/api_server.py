"""Flask API exposing the session controller to a browser frontend."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import utils
from .context import WeatherProviderProtocol
from .errors import SessionStateError
from .models import Song
from .session import SessionController


class LoopRunner:
    """Runs every controller coroutine on one background event loop."""

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self.loop.run_forever, name="melomood-loop", daemon=True)
        self._thread.start()

    def run(self, coroutine: Awaitable[Any]) -> Any:
        return asyncio.run_coroutine_threadsafe(coroutine, self.loop).result()

    def call(self, func, *args: Any) -> Any:
        """Invoke a synchronous controller method on the loop thread."""

        async def _invoke() -> Any:
            return func(*args)

        return self.run(_invoke())

    def spawn(self, coroutine: Awaitable[Any]) -> None:
        asyncio.run_coroutine_threadsafe(coroutine, self.loop)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)


def serialize_state(controller: SessionController) -> Dict[str, Any]:
    platform = controller.settings.platform
    emotion = controller.emotion
    return {
        "step": controller.step.value,
        "input_mode": controller.input_mode.value,
        "error": controller.error,
        "emotion": emotion.value if emotion else None,
        "search_query": controller.search_query,
        "playlist": [
            {
                **song.to_dict(),
                "link": utils.search_url(song, platform),
                "liked": controller.is_liked(song),
                "disliked": controller.is_disliked(song),
            }
            for song in controller.filtered_playlist()
        ],
        "context": controller.settings.to_dict(),
        "feedback": controller.feedback_history.to_dict(),
    }


def create_app(
    controller: SessionController,
    *,
    weather_provider: Optional[WeatherProviderProtocol] = None,
    runner: Optional[LoopRunner] = None,
) -> Flask:
    app = Flask(__name__)
    CORS(app)  # Enable CORS for development
    runner = runner or LoopRunner()
    app.extensions["melomood"] = {"controller": controller, "runner": runner}

    def _error(message: str, status: int):
        return jsonify({"error": message, "status": "error"}), status

    def _state_response():
        return jsonify({**serialize_state(controller), "status": "success"})

    @app.errorhandler(SessionStateError)
    def _session_state_error(exc: SessionStateError):
        return _error(str(exc), 409)

    @app.route("/api/state", methods=["GET"])
    def get_state():
        return _state_response()

    @app.route("/api/analyze", methods=["POST"])
    def analyze():
        payload = request.get_json(silent=True) or {}
        data = payload.get("data")
        if not data:
            return _error("Missing required field: data", 400)
        try:
            mode = payload.get("mode") or controller.input_mode
            runner.run(controller.submit(mode, data))
        except ValueError as exc:
            return _error(str(exc), 400)
        return _state_response()

    @app.route("/api/mode", methods=["POST"])
    def set_mode():
        payload = request.get_json(silent=True) or {}
        try:
            runner.call(controller.set_input_mode, payload.get("mode", ""))
        except ValueError as exc:
            return _error(str(exc), 400)
        return _state_response()

    @app.route("/api/reset", methods=["POST"])
    def reset():
        runner.call(controller.reset)
        return _state_response()

    @app.route("/api/search", methods=["POST"])
    def search():
        payload = request.get_json(silent=True) or {}
        runner.call(controller.set_search_query, str(payload.get("query", "")))
        return _state_response()

    @app.route("/api/feedback", methods=["POST"])
    def give_feedback():
        payload = request.get_json(silent=True) or {}
        try:
            song = Song.from_dict(payload.get("song") or {})
            runner.run(controller.give_feedback(song, payload.get("type", "")))
        except (TypeError, ValueError) as exc:
            return _error(str(exc), 400)
        return _state_response()

    @app.route("/api/feedback", methods=["DELETE"])
    def clear_feedback():
        history = runner.run(controller.clear_feedback())
        return jsonify({"feedback": history.to_dict(), "status": "success"})

    @app.route("/api/context", methods=["POST"])
    def update_context():
        payload = request.get_json(silent=True) or {}
        try:
            if "platform" in payload:
                runner.call(controller.settings.set_platform, payload["platform"])
            if "weather" in payload:
                runner.call(controller.settings.set_weather_manually, payload["weather"])
        except ValueError as exc:
            return _error(str(exc), 400)
        return _state_response()

    @app.route("/api/weather/manual", methods=["POST"])
    def manual_weather():
        runner.call(controller.settings.switch_to_manual_weather)
        return _state_response()

    @app.route("/api/weather/refresh", methods=["POST"])
    def refresh_weather():
        if weather_provider is None:
            return _error("No weather provider configured", 503)
        runner.run(controller.settings.refresh_weather(weather_provider))
        return _state_response()

    @app.route("/api/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "healthy", "message": "MeloMood API server is running"})

    return app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    import logging

    from .services import build_live_clients, build_session_controller

    logging.basicConfig(level=logging.INFO)
    clients = build_live_clients()
    session_controller = build_session_controller(clients)
    loop_runner = LoopRunner()
    loop_runner.run(session_controller.settings.refresh_weather(clients["weather_provider"]))
    loop_runner.spawn(session_controller.settings.keep_time_of_day_fresh())
    print("Starting MeloMood API server...")
    create_app(
        session_controller,
        weather_provider=clients["weather_provider"],
        runner=loop_runner,
    ).run(debug=True, host="0.0.0.0", port=5000, use_reloader=False)
