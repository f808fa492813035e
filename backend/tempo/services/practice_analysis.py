"""Practice analysis — AI feedback on a recorded session or segment.

The model is given the recording's title and duration and asked for a JSON
object matching ``AnalysisResult``. Any failure (no key, provider error,
unparsable reply) produces a deterministic fallback so the caller always
gets a result to persist.
"""

import json
import logging
import re

from tempo.config import settings
from tempo.schemas.practice import (
    AnalysisResult,
    PieceIdentified,
    Suggestion,
    TimeBreakdown,
)
from tempo.services.ai_client import AIProviderError, ai_configured, chat

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM = "You are an expert music teacher providing feedback on a practice session."

_FENCE_RE = re.compile(r"```(?:json)?\s*")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def format_time_spent(seconds: int) -> str:
    """Render seconds as m:ss."""
    seconds = max(int(seconds or 0), 0)
    return f"{seconds // 60}:{seconds % 60:02d}"


def build_analysis_prompt(title: str, duration: int) -> str:
    minutes, secs = divmod(max(duration, 0), 60)
    return f"""Session Title: "{title}"
Duration: {minutes} minutes {secs} seconds

Based on this practice session information, provide constructive feedback in this exact JSON format:

{{
  "overall_feedback": "2-3 paragraphs of encouraging, constructive feedback about this session. Comment on the duration, likely focus areas based on the title, and provide motivation.",
  "pieces_identified": [
    {{
      "name": "Piece or exercise name based on title",
      "composer": "Composer if identifiable from title",
      "duration": {duration},
      "time_spent": "{format_time_spent(duration)}"
    }}
  ],
  "time_breakdown": {{
    "warmup": {int(duration * 0.2)},
    "technique": {int(duration * 0.3)},
    "repertoire": {int(duration * 0.5)}
  }},
  "suggestions": [
    {{"issue": "First area for improvement", "suggestion": "Specific actionable advice", "priority": "high"}},
    {{"issue": "Second area for improvement", "suggestion": "More specific advice", "priority": "medium"}}
  ],
  "strengths": ["Specific thing done well", "Another strength", "Third strength"],
  "areas_for_improvement": ["Specific area to work on", "Another area for growth", "Third area"],
  "overall_score": 7
}}

Provide realistic, encouraging feedback. Score between 6-9. Focus on common practice areas.
Respond with ONLY the JSON object, no markdown formatting or extra text."""


def parse_analysis_reply(text: str) -> AnalysisResult:
    """Extract and validate the JSON object in a model reply.

    Raises:
        ValueError: no JSON object found, invalid JSON, or schema mismatch.
    """
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    match = _OBJECT_RE.search(cleaned)
    if not match:
        raise ValueError("No JSON object in analysis reply")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Analysis reply is not a JSON object")
    # Null fields fall back to the schema defaults
    return AnalysisResult.model_validate({k: v for k, v in data.items() if v is not None})


def fallback_analysis(title: str, duration: int) -> AnalysisResult:
    """Canned analysis used whenever the AI provider is unavailable."""
    duration = max(int(duration or 0), 0)
    minutes = duration // 60
    return AnalysisResult(
        overall_feedback=(
            f'Great work completing this {minutes}-minute practice session on "{title}"! '
            "Consistent practice is the key to improvement. Keep up the dedication and focus "
            "on maintaining good technique throughout your practice time."
        ),
        pieces_identified=[
            PieceIdentified(name=title, duration=duration, time_spent=format_time_spent(duration)),
        ],
        time_breakdown=TimeBreakdown(
            warmup=int(duration * 0.15),
            technique=int(duration * 0.35),
            repertoire=int(duration * 0.5),
        ),
        suggestions=[
            Suggestion(
                issue="Practice consistency",
                suggestion="Try to maintain regular daily practice sessions for best results.",
                priority="high",
            ),
            Suggestion(
                issue="Technique focus",
                suggestion="Spend time on scales and technical exercises to build fundamentals.",
                priority="medium",
            ),
        ],
        strengths=[
            "Completed a full practice session",
            "Dedicated time to skill development",
            "Building consistent practice habits",
        ],
        areas_for_improvement=[
            "Continue working on technical fundamentals",
            "Focus on accuracy over speed",
            "Record more sessions for detailed feedback",
        ],
        overall_score=7,
    )


async def analyze_practice(audio_ref: str, title: str, duration: int) -> AnalysisResult:
    """Analyze one recording.

    ``audio_ref`` is accepted for when the provider can take audio input;
    today only the title and duration are sent.
    """
    title = title or "Practice session"
    duration = max(int(duration or 0), 0)

    if not ai_configured():
        logger.info("Using fallback analysis for %s: no valid API key", audio_ref)
        return fallback_analysis(title, duration)

    try:
        reply = await chat(
            system=ANALYSIS_SYSTEM,
            messages=[{"role": "user", "content": build_analysis_prompt(title, duration)}],
            max_tokens=settings.ANALYSIS_MAX_TOKENS,
        )
        return parse_analysis_reply(reply)
    except AIProviderError as e:
        logger.warning("Analysis provider failed for %s, using fallback: %s", audio_ref, e.message)
    except ValueError as e:
        logger.warning("Unparsable analysis reply for %s, using fallback: %s", audio_ref, e)
    return fallback_analysis(title, duration)


DEFAULT_SUGGESTIONS = "Keep up the great work! Continue practicing regularly and focus on your technique."


async def get_practice_suggestions(recent_sessions: list[dict]) -> str:
    """Free-text suggestions from a list of ``{"title", "duration"}`` dicts."""
    if not recent_sessions or not ai_configured():
        return DEFAULT_SUGGESTIONS

    summary = "\n".join(
        f"{i}. {s.get('title') or 'Practice session'} ({int(s.get('duration') or 0) // 60}min)"
        for i, s in enumerate(recent_sessions, start=1)
    )
    try:
        return await chat(
            system="You are a music teacher.",
            messages=[{
                "role": "user",
                "content": (
                    "Review these recent practice sessions and provide 3-5 specific suggestions:\n\n"
                    f"{summary}\n\nProvide brief, actionable, encouraging suggestions."
                ),
            }],
            max_tokens=settings.SUGGESTIONS_MAX_TOKENS,
        ) or DEFAULT_SUGGESTIONS
    except AIProviderError as e:
        logger.warning("Suggestion request failed, using default: %s", e.message)
        return "Continue with your regular practice routine. Consistency is key!"
