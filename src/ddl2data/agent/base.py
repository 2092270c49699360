"""Base classes for LLM agent providers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)

JSON_ONLY_INSTRUCTION = (
    "IMPORTANT: You must respond with valid JSON only, no additional text or markdown."
)


@dataclass
class LLMResponse:
    """Standardized response from LLM providers."""

    content: str
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        tokens = self.usage.get("total_tokens", "?")
        return f"LLMResponse(model={self.model}, tokens={tokens})"


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers.

    Providers implement the blocking ``generate``; ``agenerate`` runs it in a
    worker thread so the event loop stays free while a request is in flight.
    """

    def __init__(self, model: str, **kwargs: Any):
        """Initialize LLM provider.

        Args:
            model: Model name/identifier
            **kwargs: Provider-specific generation defaults
        """
        self.model = model
        self.config = kwargs
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text from a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature (0.0-1.0), provider default if None
            max_tokens: Maximum tokens to generate
            response_format: Response format ("json" or None)
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse object
        """

    async def agenerate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Awaitable ``generate``."""
        return await asyncio.to_thread(
            self.generate,
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
            **kwargs,
        )

    def _defaults(self, keys: set) -> Dict[str, Any]:
        """Configured generation defaults restricted to ``keys``."""
        return {k: v for k, v in self.config.items() if k in keys and v is not None}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model})"
