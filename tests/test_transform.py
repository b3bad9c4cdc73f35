from unittest.mock import patch

from campus_nav.openai_client import OpenAIRequestError
from campus_nav.transform import (
    StyleLevel,
    build_system_prompt,
    build_user_prompt,
    parse_numbered_lines,
    transform_instructions,
    transform_with_meta,
)


def test_matching_reply_is_returned_in_order():
    calls = []

    def complete(system_message, user_message):
        calls.append((system_message, user_message))
        return "1. Turn to port, matey\n\n2. Drop anchor at the treasure\n"

    result = transform_instructions(["Turn left", "Arrive"], StyleLevel.EXPLICIT, complete=complete)

    assert result == ["Turn to port, matey", "Drop anchor at the treasure"]
    assert "1. Turn left\n2. Arrive" in calls[0][1]


def test_length_mismatch_returns_originals():
    result = transform_instructions(["A", "B"], "playful", complete=lambda system, user: "1. Only one clue")
    assert result == ["A", "B"]


def test_call_failure_returns_originals():
    def complete(system_message, user_message):
        raise OpenAIRequestError("OpenAI API returned 500")

    result = transform_with_meta(["A", "B"], StyleLevel.CRYPTIC, complete=complete)

    assert result.texts == ["A", "B"]
    assert result.fallback_used is True
    assert "500" in result.meta["fallback_reason"]


def test_empty_input_makes_no_call():
    def complete(system_message, user_message):
        raise AssertionError("should not be called")

    assert transform_instructions([], StyleLevel.EXPLICIT, complete=complete) == []


def test_missing_api_key_keeps_originals():
    with patch("campus_nav.transform.openai_client.chat_completion") as mock_completion:
        result = transform_with_meta(["Turn left"], StyleLevel.EXPLICIT)

    mock_completion.assert_not_called()
    assert result.texts == ["Turn left"]
    assert result.fallback_used is True


def test_default_completion_uses_openai_client(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with patch("campus_nav.transform.openai_client.chat_completion", return_value="1. Arr, go left") as mock_completion:
        result = transform_instructions(["Go left"], "explicit")

    assert result == ["Arr, go left"]
    mock_completion.assert_called_once()


def test_unknown_style_falls_back_to_explicit():
    result = transform_with_meta(["Go"], "shouty", complete=lambda system, user: "1. Yo ho")
    assert result.style is StyleLevel.EXPLICIT


def test_styles_change_the_system_prompt():
    prompts = {level: build_system_prompt(level) for level in StyleLevel}
    assert len(set(prompts.values())) == 3
    assert "clearly convey the actual direction" in prompts[StyleLevel.EXPLICIT]
    assert "never name a direction or a distance literally" in prompts[StyleLevel.CRYPTIC]


def test_parse_numbered_lines_strips_numbering_and_blanks():
    assert parse_numbered_lines("1. First\n\n  2.   Second  \n10. Tenth") == ["First", "Second", "Tenth"]


def test_user_prompt_numbers_from_one():
    assert build_user_prompt(["a", "b"]).endswith("1. a\n2. b")
