"""Rewrite navigation instructions as pirate treasure-hunt clues.

The rewrite never fails loudly: any call error or a reply that does not map
one line per instruction falls back to the original texts.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from . import openai_client

logger = logging.getLogger(__name__)

CompletionCall = Callable[[str, str], str]

_NUMBERING_RE = re.compile(r"^\d+\.\s*")


class StyleLevel(str, Enum):
    EXPLICIT = "explicit"
    PLAYFUL = "playful"
    CRYPTIC = "cryptic"


_COMMON_RULES = """- Return ONLY the numbered list, one clue per line, same numbering as input
- Do NOT add any extra text before or after the list"""

_STYLE_RULES: Dict[StyleLevel, str] = {
    StyleLevel.EXPLICIT: """- Keep each clue to 1-2 sentences maximum
- The clue must still clearly convey the actual direction (left, right, forward, distance, etc.)
- Use pirate language (ye, matey, starboard for right, port for left, paces for meters, etc.)
- Keep every number and landmark from the original instruction""",
    StyleLevel.PLAYFUL: """- Keep each clue to 1-2 sentences maximum
- Turn each instruction into a playful treasure-hunt riddle
- Directions may be hinted (starboard, port, dead ahead) but must stay recoverable
- Distances may be rounded into paces or leagues""",
    StyleLevel.CRYPTIC: """- Keep each clue to 1-2 sentences maximum
- Speak only in metaphor: never name a direction or a distance literally
- Use sea, stars, winds and treasure imagery to stand in for the movement
- Each clue must still correspond to exactly one instruction""",
}


@dataclass
class TransformResult:
    texts: List[str]
    style: StyleLevel
    fallback_used: bool = False
    meta: Dict[str, object] = field(default_factory=dict)


def coerce_style(style: object) -> StyleLevel:
    if isinstance(style, StyleLevel):
        return style
    try:
        return StyleLevel(str(style or "").strip().lower())
    except ValueError:
        logger.info("Unknown style %r, using %s", style, StyleLevel.EXPLICIT.value)
        return StyleLevel.EXPLICIT


def build_system_prompt(style: StyleLevel) -> str:
    return (
        "You are a pirate captain giving treasure hunt clues to yer crew on a university campus.\n"
        "Transform each navigation instruction into a short, fun pirate-themed clue.\n\n"
        f"Rules:\n{_STYLE_RULES[style]}\n{_COMMON_RULES}"
    )


def build_user_prompt(texts: Sequence[str]) -> str:
    numbered = "\n".join(f"{index}. {text}" for index, text in enumerate(texts, start=1))
    return f"Transform these navigation instructions into pirate clues:\n\n{numbered}"


def parse_numbered_lines(content: str) -> List[str]:
    lines = (_NUMBERING_RE.sub("", line.strip()).strip() for line in (content or "").split("\n"))
    return [line for line in lines if line]


def _default_completion(system_message: str, user_message: str) -> str:
    return openai_client.chat_completion(system_message, user_message, temperature=0.8, max_tokens=1024)


def transform_with_meta(
    texts: Sequence[str],
    style: object = StyleLevel.EXPLICIT,
    *,
    complete: Optional[CompletionCall] = None,
) -> TransformResult:
    originals = list(texts)
    level = coerce_style(style)
    if not originals:
        return TransformResult(texts=[], style=level)

    if complete is None:
        if not openai_client.get_api_key():
            logger.info("OPENAI_API_KEY missing, keeping original instructions")
            return TransformResult(texts=originals, style=level, fallback_used=True, meta={"fallback_reason": "api key missing"})
        complete = _default_completion

    try:
        content = complete(build_system_prompt(level), build_user_prompt(originals))
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Instruction transform failed, keeping originals: %s", exc)
        return TransformResult(texts=originals, style=level, fallback_used=True, meta={"fallback_reason": str(exc)})

    lines = parse_numbered_lines(content)
    if len(lines) != len(originals):
        logger.warning(
            "Transform returned %s lines for %s instructions, falling back to originals",
            len(lines),
            len(originals),
        )
        return TransformResult(
            texts=originals,
            style=level,
            fallback_used=True,
            meta={"fallback_reason": "line count mismatch", "received": len(lines)},
        )
    return TransformResult(texts=lines, style=level)


def transform_instructions(
    texts: Sequence[str],
    style: object = StyleLevel.EXPLICIT,
    *,
    complete: Optional[CompletionCall] = None,
) -> List[str]:
    """Return stylized texts positionally matching ``texts``, or the originals."""
    return transform_with_meta(texts, style, complete=complete).texts
