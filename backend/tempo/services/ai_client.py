"""
AI client — Anthropic Claude.

Single entry point ``chat()`` used by the practice analysis service. When no
API key is configured, ``chat()`` raises ``AIProviderError`` and callers fall
back to their canned responses.
"""

import anthropic

from tempo.config import settings
from tempo.middleware.error_handling import ServiceError

# Placeholder shipped in example .env files
_PLACEHOLDER_KEY = "sk-ant-REDACTED"


class AIProviderError(ServiceError):
    status_code = 502
    error_code = "ai_provider_error"


# ─────────────────────────────────────────────────────────────────────────────
# Status helpers
# ─────────────────────────────────────────────────────────────────────────────

def ai_configured() -> bool:
    key = settings.ANTHROPIC_API_KEY.strip()
    return bool(key) and key != _PLACEHOLDER_KEY


def ai_provider_name() -> str:
    if ai_configured():
        return f"Anthropic ({settings.ANTHROPIC_MODEL})"
    return "none"


async def ai_health_check() -> dict:
    """Live connectivity test, called by /api/health/ai."""
    provider = ai_provider_name()
    if provider == "none":
        return {
            "provider": "none",
            "status": "unconfigured",
            "message": "Set ANTHROPIC_API_KEY in backend/.env. Analyses use the built-in fallback until then.",
        }

    try:
        reply = await chat(
            system="You are a test assistant.",
            messages=[{"role": "user", "content": "Reply with exactly: OK"}],
            max_tokens=10,
            temperature=0.0,
        )
        return {"provider": provider, "status": "ok", "test_reply": reply.strip()}
    except AIProviderError as e:
        return {"provider": provider, "status": "error", "error": e.message}


# ─────────────────────────────────────────────────────────────────────────────
# Public chat()
# ─────────────────────────────────────────────────────────────────────────────

async def chat(
    system: str,
    messages: list[dict],
    max_tokens: int = 400,
    temperature: float = 0.7,
) -> str:
    """Send a chat completion request and return the first text block."""
    if not ai_configured():
        raise AIProviderError("ANTHROPIC_API_KEY is not configured", status_code=503)

    client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
    kwargs: dict = {
        "model": settings.ANTHROPIC_MODEL,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": messages,
    }
    if system:
        kwargs["system"] = system

    try:
        response = await client.messages.create(**kwargs)
    except anthropic.APIError as e:
        raise AIProviderError(f"Anthropic error: {e}") from e

    for block in response.content:
        if block.type == "text":
            return block.text
    return ""
