"""Abstract base for all text-generation backends."""

import json
from abc import ABC, abstractmethod
from typing import Any

from haiku_arena.models import ModelResponse


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all text-generation backends."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_schema: dict[str, Any] | None = None,
        purpose: str = "",
    ) -> ModelResponse:
        """Generate text for the given prompt.

        Args:
            prompt: The full prompt text to send.
            temperature: Sampling temperature; provider default when None.
            response_schema: JSON schema the reply must conform to. When set,
                the returned content is JSON text.
            purpose: Short label for logging ("opponent", "judge", ...).

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...


def schema_instruction(prompt: str, response_schema: dict[str, Any]) -> str:
    """Append a JSON-only instruction for backends without native schema support."""
    return (
        f"{prompt}\n\nRespond with JSON only, no prose or code fences, "
        f"matching this JSON schema:\n{json.dumps(response_schema)}"
    )
