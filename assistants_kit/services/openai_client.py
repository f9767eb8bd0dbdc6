# assistants_kit/services/openai_client.py
# Builds the AsyncOpenAI client used when callers do not pass their own.

import httpx
from openai import AsyncOpenAI
from assistants_kit.core.config import get_settings


def get_openai_client() -> AsyncOpenAI:
    """
    Acts as a factory for the assistants API client, configured from settings.

    Every linker and run operation accepts an explicit client; this factory is
    only the fallback for callers that rely on environment configuration.

    Returns:
        An AsyncOpenAI client with the configured key, base URL and timeout.
    """
    settings = get_settings()
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        timeout=httpx.Timeout(settings.OPENAI_TIMEOUT, connect=min(settings.OPENAI_TIMEOUT, 10.0)),
    )
