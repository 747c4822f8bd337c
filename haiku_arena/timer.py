"""Single-shot round countdown on the running asyncio loop."""

import asyncio
import logging
import math
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RoundTimer:
    """One countdown at a time; starting a new one cancels the previous.

    Every start/cancel bumps a generation token. A scheduled expiry carries
    the token it was armed with and is a no-op if the token has moved on.
    """

    def __init__(self) -> None:
        self._token = 0
        self._handle: asyncio.TimerHandle | None = None
        self._deadline: float | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def token(self) -> int:
        return self._token

    def start(self, duration_sec: float, on_expire: Callable[[], None]) -> int:
        """Arm a countdown and return its token. Must be called inside a running loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._loop = loop
        token = self._token
        self._deadline = loop.time() + duration_sec
        self._handle = loop.call_later(duration_sec, self._fire, token, on_expire)
        logger.debug("Timer %d armed for %.1fs", token, duration_sec)
        return token

    def cancel(self) -> None:
        """Stop the active countdown; harmless when none is active."""
        self._token += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._deadline = None

    def remaining(self) -> int:
        """Whole seconds left, rounded up and clamped at 0."""
        if self._deadline is None or self._loop is None:
            return 0
        return max(0, math.ceil(self._deadline - self._loop.time()))

    def _fire(self, token: int, on_expire: Callable[[], None]) -> None:
        if token != self._token:
            logger.debug("Ignoring stale timer %d (current %d)", token, self._token)
            return
        self._token += 1
        self._handle = None
        self._deadline = None
        logger.debug("Timer %d expired", token)
        on_expire()
