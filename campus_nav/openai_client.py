"""HTTP calls to an OpenAI-compatible API for chat completions and speech."""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, Optional

import requests

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TTS_MODEL = "tts-1"
DEFAULT_TTS_VOICE = "onyx"
REQUEST_TIMEOUT = 30
# (connect, read) seconds; bounds how long a cancelled download keeps its worker.
SPEECH_TIMEOUT = (3.05, 10)
AUDIO_CHUNK_SIZE = 16 * 1024

logger = logging.getLogger(__name__)


class OpenAIRequestError(RuntimeError):
    """Raised when a completion request fails or returns an unusable body."""


class SpeechSynthesisError(RuntimeError):
    """Raised when the speech endpoint fails or answers with a non-success status."""


class SpeechCancelled(Exception):
    """Raised inside a synthesis call once its cancel event is set."""


def get_api_key() -> str:
    return os.getenv("OPENAI_API_KEY", "").strip()


def _base_url() -> str:
    return (os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL).rstrip("/")


def _headers(api_key: str) -> Dict[str, str]:
    return {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}


def chat_completion(
    system_message: str,
    user_message: str,
    *,
    temperature: float = 0.8,
    max_tokens: int = 1024,
    model: Optional[str] = None,
) -> str:
    """Return the assistant text of a single-turn chat completion."""
    api_key = get_api_key()
    if not api_key:
        raise OpenAIRequestError("OPENAI_API_KEY is not configured")

    payload: Dict[str, Any] = {
        "model": model or os.getenv("OPENAI_CHAT_MODEL", DEFAULT_CHAT_MODEL),
        "messages": [
            {"role": "system", "content": system_message},
            {"role": "user", "content": user_message},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    try:
        response = requests.post(
            f"{_base_url()}/chat/completions",
            headers=_headers(api_key),
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise OpenAIRequestError(f"Completion request failed: {exc}") from exc

    if not response.ok:
        logger.error("OpenAI API error: %s %s", response.status_code, response.text[:500])
        raise OpenAIRequestError(f"OpenAI API returned {response.status_code}")

    try:
        data = response.json()
    except ValueError as exc:
        raise OpenAIRequestError("OpenAI response was not valid JSON") from exc

    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        raise OpenAIRequestError("OpenAI response did not include choices")
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    return content if isinstance(content, str) else ""


def synthesize_speech(
    text: str,
    *,
    cancel_event: Optional[threading.Event] = None,
    voice: Optional[str] = None,
    model: Optional[str] = None,
) -> bytes:
    """Download narrated mp3 audio for ``text``.

    The body is streamed so a set ``cancel_event`` closes the connection
    between chunks and raises :class:`SpeechCancelled`.
    """
    api_key = get_api_key()
    if not api_key:
        raise SpeechSynthesisError("OPENAI_API_KEY is not configured")

    def _check_cancelled() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SpeechCancelled()

    _check_cancelled()
    payload = {
        "model": model or os.getenv("OPENAI_TTS_MODEL", DEFAULT_TTS_MODEL),
        "voice": voice or os.getenv("OPENAI_TTS_VOICE", DEFAULT_TTS_VOICE),
        "input": text,
        "response_format": "mp3",
    }
    try:
        response = requests.post(
            f"{_base_url()}/audio/speech",
            headers=_headers(api_key),
            json=payload,
            timeout=SPEECH_TIMEOUT,
            stream=True,
        )
    except requests.RequestException as exc:
        raise SpeechSynthesisError(f"Speech request failed: {exc}") from exc

    with response:
        _check_cancelled()
        if not response.ok:
            raise SpeechSynthesisError(f"Speech API returned {response.status_code}")
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=AUDIO_CHUNK_SIZE):
                _check_cancelled()
                if chunk:
                    chunks.append(chunk)
        except requests.RequestException as exc:
            raise SpeechSynthesisError(f"Speech download failed: {exc}") from exc
    _check_cancelled()
    return b"".join(chunks)
