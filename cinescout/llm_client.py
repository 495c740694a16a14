"""Anthropic client factory."""
from __future__ import annotations

from cinescout.config import settings
from cinescout.errors import Misconfigured


def require_api_key() -> str:
    """Return the configured API key, or fail before any streaming starts."""
    if not settings.anthropic_api_key:
        raise Misconfigured("ANTHROPIC_API_KEY environment variable is not set")
    return settings.anthropic_api_key


def get_client():
    """Create an AsyncAnthropic client from config."""
    import anthropic

    return anthropic.AsyncAnthropic(api_key=require_api_key())


def get_model() -> str:
    return settings.default_model


# Singleton
_client = None


def client():
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
