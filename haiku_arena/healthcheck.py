"""Provider health check. Pings the backend before the first match."""

import asyncio
import logging

from haiku_arena.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def check_provider(provider: AIProvider) -> tuple[bool, str]:
    """Ping a single provider. Returns (ok, error_message); error_message is "" when ok."""
    try:
        await asyncio.wait_for(
            provider.generate(_PING_PROMPT, purpose="healthcheck"),
            timeout=_TIMEOUT_SEC,
        )
        return True, ""
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", provider.name(), exc)
        return False, str(exc) or type(exc).__name__
