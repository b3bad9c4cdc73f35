"""Spoken playback of single instructions.

Each ``speak`` call yields a :class:`SpeechSession` running on the
controller's worker pool: synthesize, write the audio to a temp file, play it.
One cancel event is shared by the download and the player, so ``stop()``
aborts whichever stage is running.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame  # noqa: E402

from .openai_client import SpeechCancelled, SpeechSynthesisError, synthesize_speech  # noqa: E402

logger = logging.getLogger(__name__)

Synthesizer = Callable[..., bytes]


class AudioPlayer:
    """Interface for blocking audio playback that can be interrupted."""

    def play(self, path: str, cancel_event: threading.Event) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError


class PygamePlayer(AudioPlayer):
    """Plays mp3 files through ``pygame.mixer.music``.

    A host without an audio device leaves the mixer uninitialised; playback
    is then skipped instead of failing.
    """

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init()
            logger.info("pygame mixer initialised")
        except pygame.error as exc:
            logger.warning("pygame mixer unavailable, speech will be silent: %s", exc)

    @property
    def available(self) -> bool:
        return bool(pygame.mixer.get_init())

    def play(self, path: str, cancel_event: threading.Event) -> None:
        if not self.available:
            logger.debug("No audio device, skipping playback of %s", path)
            return
        pygame.mixer.music.load(path)
        pygame.mixer.music.play()
        while pygame.mixer.music.get_busy():
            if cancel_event.wait(self._poll_interval):
                break
        pygame.mixer.music.stop()
        pygame.mixer.music.unload()

    def stop(self) -> None:
        if self.available:
            pygame.mixer.music.stop()


class SpeechSession:
    """A cancellable narration of one text.

    ``done`` resolves with ``None`` when playback ends or ``stop()`` is
    called, and fails only with :class:`SpeechSynthesisError`.
    """

    def __init__(self, text: str, synthesize: Synthesizer, player: AudioPlayer) -> None:
        self.text = text
        self.done: "Future[None]" = Future()
        self._synthesize = synthesize
        self._player = player
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._audio_path: Optional[str] = None
        self._playing = False

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def active(self) -> bool:
        return not self.done.done()

    def stop(self) -> None:
        """Abort download and playback; safe to call any number of times."""
        with self._lock:
            if self._cancel.is_set():
                return
            self._cancel.set()
            playing = self._playing
        if playing:
            self._player.stop()
        self._release_audio()
        self._finish()

    def run(self) -> None:
        try:
            audio = self._synthesize(self.text, cancel_event=self._cancel)
        except SpeechCancelled:
            self._finish()
            return
        except SpeechSynthesisError as exc:
            logger.warning("Speech synthesis failed: %s", exc)
            self._finish(exc)
            return
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Speech synthesis failed: %s", exc)
            error = SpeechSynthesisError(f"Speech synthesis failed: {exc}")
            error.__cause__ = exc
            self._finish(error)
            return

        try:
            path = self._store_audio(audio)
            if path is not None and not self._cancel.is_set():
                self._player.play(path, self._cancel)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Audio playback failed: %s", exc)
        finally:
            with self._lock:
                self._playing = False
            self._release_audio()
            self._finish()

    def _store_audio(self, audio: bytes) -> Optional[str]:
        handle, path = tempfile.mkstemp(prefix="campus-nav-", suffix=".mp3")
        try:
            with os.fdopen(handle, "wb") as stream:
                stream.write(audio)
        except Exception:
            os.remove(path)
            raise
        with self._lock:
            if self._cancel.is_set():
                stale = True
            else:
                stale = False
                self._audio_path = path
                self._playing = True
        if stale:
            os.remove(path)
            return None
        return path

    def _release_audio(self) -> None:
        with self._lock:
            path, self._audio_path = self._audio_path, None
        if path is None:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove temp audio %s: %s", path, exc)

    def _finish(self, error: Optional[BaseException] = None) -> None:
        with self._lock:
            if self.done.done():
                return
            if error is None:
                self.done.set_result(None)
            else:
                self.done.set_exception(error)


class SpeechController:
    """Starts speech sessions on a small worker pool.

    The controller does not stop earlier sessions on its own; the caller owns
    the current session and must stop it before asking for the next one.
    """

    def __init__(
        self,
        *,
        synthesize: Synthesizer = synthesize_speech,
        player: Optional[AudioPlayer] = None,
        player_factory: Callable[[], AudioPlayer] = PygamePlayer,
        max_workers: int = 4,
    ) -> None:
        self._synthesize = synthesize
        self._player = player
        self._player_factory = player_factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="speech")

    @property
    def player(self) -> AudioPlayer:
        if self._player is None:
            self._player = self._player_factory()
        return self._player

    def speak(self, text: str) -> SpeechSession:
        session = SpeechSession(text, self._synthesize, self.player)
        self._executor.submit(session.run)
        return session

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
