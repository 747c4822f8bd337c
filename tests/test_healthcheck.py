"""Unit tests for haiku_arena/healthcheck.py — no real API calls."""

import asyncio
from unittest.mock import AsyncMock, patch

from haiku_arena.healthcheck import check_provider
from haiku_arena.providers.base import ProviderError
from tests.conftest import MockProvider, make_response


async def test_provider_passes():
    provider = MockProvider("gemini")
    provider.generate = AsyncMock(return_value=make_response("OK", "gemini"))

    assert await check_provider(provider) == (True, "")
    assert provider.generate.await_args.kwargs["purpose"] == "healthcheck"


async def test_provider_fails_with_message():
    provider = MockProvider("grok")
    provider.generate = AsyncMock(side_effect=ProviderError("grok", "403 Forbidden"))

    ok, err = await check_provider(provider)
    assert ok is False
    assert "403" in err


async def test_provider_hangs_times_out():
    provider = MockProvider("slow")

    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    provider.generate = AsyncMock(side_effect=hang)

    with patch("haiku_arena.healthcheck._TIMEOUT_SEC", 0.01):
        ok, err = await check_provider(provider)
    assert ok is False
    assert err  # TimeoutError has no message; the type name is reported
