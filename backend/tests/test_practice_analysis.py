"""Tests for analysis parsing and fallbacks (no network access)."""

import asyncio
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from tempo.config import settings
from tempo.services import practice_analysis
from tempo.services.ai_client import AIProviderError
from tempo.services.practice_analysis import (
    DEFAULT_SUGGESTIONS,
    analyze_practice,
    build_analysis_prompt,
    fallback_analysis,
    format_time_spent,
    get_practice_suggestions,
    parse_analysis_reply,
)

REPLY = """{
  "overall_feedback": "Solid scales.",
  "pieces_identified": [{"name": "Prelude in C", "composer": "Bach", "duration": 300, "time_spent": "5:00"}],
  "time_breakdown": {"warmup": 60, "repertoire": 240},
  "suggestions": [{"issue": "Tempo", "suggestion": "Use a metronome", "priority": "high"}],
  "strengths": ["Even tone"],
  "areas_for_improvement": ["Dynamics"],
  "overall_score": 8
}"""


class TestFormatting:

    def test_time_spent(self):
        assert format_time_spent(0) == "0:00"
        assert format_time_spent(65) == "1:05"
        assert format_time_spent(600) == "10:00"

    def test_negative_and_none_clamped(self):
        assert format_time_spent(-5) == "0:00"
        assert format_time_spent(None) == "0:00"

    def test_prompt_mentions_title_and_duration(self):
        prompt = build_analysis_prompt("Chopin etude", 125)
        assert '"Chopin etude"' in prompt
        assert "2 minutes 5 seconds" in prompt


class TestParseReply:
    """Model replies are parsed leniently and validated strictly."""

    def test_plain_json(self):
        result = parse_analysis_reply(REPLY)
        assert result.overall_score == 8
        assert result.pieces_identified[0].composer == "Bach"
        assert result.time_breakdown.repertoire == 240
        assert result.time_breakdown.technique is None
        assert result.suggestions[0].priority == "high"

    def test_code_fences_stripped(self):
        result = parse_analysis_reply(f"```json\n{REPLY}\n```")
        assert result.overall_feedback == "Solid scales."

    def test_surrounding_prose_ignored(self):
        result = parse_analysis_reply(f"Here is your analysis:\n{REPLY}\nGood luck!")
        assert result.strengths == ["Even tone"]

    def test_missing_fields_get_defaults(self):
        result = parse_analysis_reply('{"overall_feedback": "Nice", "overall_score": null}')
        assert result.overall_feedback == "Nice"
        assert result.overall_score == 7
        assert result.suggestions == []

    def test_no_json_raises(self):
        with pytest.raises(ValueError):
            parse_analysis_reply("I cannot analyze this recording.")

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_analysis_reply('{"overall_feedback": "unterminated}')

    def test_bad_priority_raises(self):
        with pytest.raises(ValueError):
            parse_analysis_reply(
                '{"suggestions": [{"issue": "x", "suggestion": "y", "priority": "urgent"}]}'
            )


class TestFallback:

    def test_time_split(self):
        result = fallback_analysis("Scales", 1000)
        assert result.time_breakdown.warmup == 150
        assert result.time_breakdown.technique == 350
        assert result.time_breakdown.repertoire == 500

    def test_score_and_suggestions(self):
        result = fallback_analysis("Scales", 600)
        assert result.overall_score == 7
        assert [s.priority for s in result.suggestions] == ["high", "medium"]
        assert "10-minute" in result.overall_feedback

    def test_piece_uses_title(self):
        result = fallback_analysis("Moonlight Sonata", 90)
        assert result.pieces_identified[0].name == "Moonlight Sonata"
        assert result.pieces_identified[0].time_spent == "1:30"


class TestAnalyzePractice:
    """The analysis call always produces a result."""

    def test_no_key_uses_fallback(self, monkeypatch):
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
        result = asyncio.run(analyze_practice("ref", "Scales", 600))
        assert result == fallback_analysis("Scales", 600)

    def test_provider_reply_parsed(self, monkeypatch):
        async def fake_chat(**kwargs):
            return REPLY

        monkeypatch.setattr(practice_analysis, "ai_configured", lambda: True)
        monkeypatch.setattr(practice_analysis, "chat", fake_chat)
        result = asyncio.run(analyze_practice("ref", "Bach", 300))
        assert result.overall_score == 8

    def test_provider_error_uses_fallback(self, monkeypatch):
        async def failing_chat(**kwargs):
            raise AIProviderError("boom")

        monkeypatch.setattr(practice_analysis, "ai_configured", lambda: True)
        monkeypatch.setattr(practice_analysis, "chat", failing_chat)
        result = asyncio.run(analyze_practice("ref", "Scales", 120))
        assert result == fallback_analysis("Scales", 120)

    def test_garbage_reply_uses_fallback(self, monkeypatch):
        async def garbage_chat(**kwargs):
            return "no json here"

        monkeypatch.setattr(practice_analysis, "ai_configured", lambda: True)
        monkeypatch.setattr(practice_analysis, "chat", garbage_chat)
        result = asyncio.run(analyze_practice("ref", "", 60))
        assert result == fallback_analysis("Practice session", 60)


class TestSuggestions:

    def test_no_sessions_default(self, monkeypatch):
        monkeypatch.setattr(practice_analysis, "ai_configured", lambda: True)
        assert asyncio.run(get_practice_suggestions([])) == DEFAULT_SUGGESTIONS

    def test_no_key_default(self, monkeypatch):
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", "")
        assert asyncio.run(get_practice_suggestions([{"title": "x", "duration": 60}])) == DEFAULT_SUGGESTIONS

    def test_summary_sent_to_provider(self, monkeypatch):
        seen = {}

        async def fake_chat(system, messages, max_tokens):
            seen["content"] = messages[0]["content"]
            return "Practice slowly."

        monkeypatch.setattr(practice_analysis, "ai_configured", lambda: True)
        monkeypatch.setattr(practice_analysis, "chat", fake_chat)
        text = asyncio.run(get_practice_suggestions([{"title": "Scales", "duration": 600}]))
        assert text == "Practice slowly."
        assert "1. Scales (10min)" in seen["content"]
