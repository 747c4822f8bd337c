"""Backend calls with the game's failure policy: retry a timeout once, then fall back."""

import logging
from typing import Any

from haiku_arena.models import ModelResponse
from haiku_arena.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


async def _call_provider(
    provider: AIProvider,
    prompt: str,
    purpose: str,
    temperature: float | None,
    response_schema: dict[str, Any] | None,
) -> ModelResponse | ProviderError:
    """Call a provider, retrying once on timeout with 1.5x the timeout.

    Never raises; returns ProviderError on permanent failure.
    """
    kwargs: dict[str, Any] = {
        "temperature": temperature,
        "response_schema": response_schema,
        "purpose": purpose,
    }
    try:
        return await provider.generate(prompt, **kwargs)
    except ProviderError as exc:
        if "timed out" not in str(exc).lower():
            return exc
        # Retry once with 1.5x timeout by temporarily patching provider config
        cfg = getattr(provider, "_config", None)
        original_timeout: int | None = None
        if cfg is not None and hasattr(cfg, "timeout_sec"):
            original_timeout = cfg.timeout_sec
            cfg.timeout_sec = int(original_timeout * 1.5)
            logger.warning(
                "Provider %s timed out on %s, retrying with %ds (1.5x)",
                provider.name(), purpose, cfg.timeout_sec,
            )
        else:
            logger.warning("Provider %s timed out on %s, retrying", provider.name(), purpose)
        try:
            return await provider.generate(prompt, **kwargs)
        except ProviderError as retry_exc:
            return retry_exc
        except Exception as retry_exc:
            return ProviderError(provider.name(), f"Unexpected error on retry: {retry_exc}")
        finally:
            if cfg is not None and original_timeout is not None:
                cfg.timeout_sec = original_timeout
    except Exception as exc:
        return ProviderError(provider.name(), f"Unexpected error: {exc}")


async def generate_or_fallback(
    provider: AIProvider,
    prompt: str,
    fallback: str,
    *,
    purpose: str,
    temperature: float | None = None,
    response_schema: dict[str, Any] | None = None,
) -> tuple[str, bool]:
    """Generate text, degrading to ``fallback`` on any failure.

    Returns:
        (text, used_fallback). Blank replies count as failures.
    """
    result = await _call_provider(provider, prompt, purpose, temperature, response_schema)
    if isinstance(result, ProviderError):
        logger.warning("Generation failed for %s, using fallback: %s", purpose, result)
        return fallback, True
    text = result.content.strip()
    if not text:
        logger.warning("Generation for %s returned blank text, using fallback", purpose)
        return fallback, True
    return text, False
