"""Step-by-step playback of a normalized route.

``StepPlayback`` owns the cursor over the steps, the pending interstitial
advance and the speech session of the step on screen. It is driven from a
single thread; speech runs on the speech controller's workers and never
touches the cursor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .interstitials import Interstitial, InterstitialDeck
from .models import RouteStep
from .speech import SpeechController, SpeechSession

logger = logging.getLogger(__name__)

# An interstitial is shown on the way into every second step.
INTERSTITIAL_EVERY = 2


class PlaybackState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PendingAdvance:
    target: int
    interstitial: Interstitial


def is_interstitial_position(position: int, step_count: int) -> bool:
    """True for odd positions past the start that are still real steps."""
    return 0 < position < step_count and position % INTERSTITIAL_EVERY == 1


class StepPlayback:
    def __init__(
        self,
        steps: Sequence[RouteStep] = (),
        *,
        speech: Optional[SpeechController] = None,
        deck: Optional[InterstitialDeck] = None,
        auto_speak: bool = False,
    ) -> None:
        self._speech = speech
        self._deck = deck or InterstitialDeck()
        self.auto_speak = auto_speak
        self._steps: List[RouteStep] = []
        self._cursor = 0
        self._pending: Optional[PendingAdvance] = None
        self._session: Optional[SpeechSession] = None
        self._generation = 0
        if steps:
            self.load(steps)

    @property
    def steps(self) -> List[RouteStep]:
        return list(self._steps)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> Optional[PendingAdvance]:
        return self._pending

    @property
    def speech_session(self) -> Optional[SpeechSession]:
        return self._session

    @property
    def state(self) -> PlaybackState:
        if not self._steps:
            return PlaybackState.IDLE
        if self._cursor >= len(self._steps):
            return PlaybackState.COMPLETED
        return PlaybackState.ACTIVE

    @property
    def current_step(self) -> Optional[RouteStep]:
        if self.state is not PlaybackState.ACTIVE:
            return None
        return self._steps[self._cursor]

    def load(self, steps: Sequence[RouteStep]) -> int:
        """Start playback of ``steps`` from the first one; returns the new generation."""
        self.stop_speech()
        self._steps = list(steps)
        self._cursor = 0
        self._pending = None
        self._generation += 1
        self._on_position_entered()
        return self._generation

    def apply_texts(self, texts: Sequence[str], generation: int) -> bool:
        """Swap in rewritten texts if they still belong to the loaded route."""
        if generation != self._generation:
            logger.info("Discarding texts for stale route generation %s", generation)
            return False
        if len(texts) != len(self._steps):
            logger.warning("Discarding %s texts for %s steps", len(texts), len(self._steps))
            return False
        self._steps = [step.copy(update={"text": text}) for step, text in zip(self._steps, texts)]
        return True

    def next(self) -> Optional[Interstitial]:
        """Advance one step.

        Returns the interstitial to show when the advance is deferred; the
        move then happens on :meth:`dismiss_interstitial`.
        """
        if self.state is not PlaybackState.ACTIVE or self._pending is not None:
            return None
        target = self._cursor + 1
        if is_interstitial_position(target, len(self._steps)):
            self.stop_speech()
            interstitial = self._deck.draw()
            self._pending = PendingAdvance(target=target, interstitial=interstitial)
            logger.debug("Deferring advance to %s behind an interstitial", target)
            return interstitial
        self._move_to(target)
        return None

    def dismiss_interstitial(self) -> bool:
        pending, self._pending = self._pending, None
        if pending is None:
            return False
        self._move_to(pending.target)
        return True

    def prev(self) -> None:
        if self._pending is not None or not self._steps or self._cursor == 0:
            return
        self._move_to(max(0, self._cursor - 1))

    def reset(self) -> None:
        self.stop_speech()
        self._steps = []
        self._cursor = 0
        self._pending = None
        self._generation += 1

    def speak_current(self) -> Optional[SpeechSession]:
        """Narrate the current step, replacing any session already running."""
        self.stop_speech()
        step = self.current_step
        if step is None or self._speech is None:
            return None
        self._session = self._speech.speak(step.text)
        return self._session

    def stop_speech(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.stop()

    def _move_to(self, position: int) -> None:
        self.stop_speech()
        self._cursor = min(position, len(self._steps))
        self._on_position_entered()

    def _on_position_entered(self) -> None:
        if self.state is PlaybackState.COMPLETED:
            logger.info("Route completed after %s steps", len(self._steps))
        elif self.auto_speak and self.state is PlaybackState.ACTIVE:
            self.speak_current()
