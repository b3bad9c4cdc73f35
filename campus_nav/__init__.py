"""Flask application factory."""
import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify

load_dotenv(override=True)


def _get_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    return value.strip()


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = _get_env("SECRET_KEY", "dev-secret")
    app.config["FLASK_ENV"] = _get_env("FLASK_ENV", "development")
    app.config["MAZEMAP_CAMPUS_ID"] = _get_env_int("MAZEMAP_CAMPUS_ID", 742)
    app.config["MAZEMAP_LANG"] = _get_env("MAZEMAP_LANG", "en")
    app.config["OPENAI_API_KEY"] = _get_env("OPENAI_API_KEY", "")
    app.config["OPENAI_CHAT_MODEL"] = _get_env("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    app.config["OPENAI_TTS_MODEL"] = _get_env("OPENAI_TTS_MODEL", "tts-1")
    app.config["OPENAI_TTS_VOICE"] = _get_env("OPENAI_TTS_VOICE", "onyx")
    app.config["REQUEST_TIMEOUT"] = _get_env_float("REQUEST_TIMEOUT", 10.0)
    app.config["SEARCH_DEBOUNCE_SECONDS"] = _get_env_float("SEARCH_DEBOUNCE_SECONDS", 0.3)

    if app.config["FLASK_ENV"] == "development":
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    from .cli import register_cli  # pylint: disable=import-outside-toplevel
    from .routes import api_bp  # pylint: disable=import-outside-toplevel

    app.register_blueprint(api_bp, url_prefix="/api")
    register_cli(app)

    @app.get("/health")
    def health():
        """Report which optional integrations are configured."""
        return jsonify(
            {
                "status": "ok",
                "campus_id": app.config["MAZEMAP_CAMPUS_ID"],
                "transform_enabled": bool(app.config["OPENAI_API_KEY"]),
                "speech_enabled": bool(app.config["OPENAI_API_KEY"]),
            }
        )

    return app
