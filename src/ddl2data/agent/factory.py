"""Factory for creating LLM provider instances."""

from __future__ import annotations

from typing import Any, List, Optional

from ddl2data.agent.base import BaseLLMProvider
from ddl2data.agent.providers import PROVIDER_REGISTRY
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @staticmethod
    def create_provider(
        provider: str, model: Optional[str] = None, **kwargs: Any
    ) -> BaseLLMProvider:
        """Create an LLM provider instance.

        Args:
            provider: Provider name (e.g., "gemini", "openai")
            model: Model name (provider-specific default if None)
            **kwargs: Provider-specific configuration

        Returns:
            BaseLLMProvider instance

        Raises:
            ValueError: If provider is not supported

        Example:
            >>> provider = LLMProviderFactory.create_provider(
            ...     provider="ollama",
            ...     model="llama3.1",
            ...     temperature=0.7,
            ... )
        """
        provider_class = PROVIDER_REGISTRY.get(provider.lower())
        if provider_class is None:
            available = ", ".join(LLMProviderFactory.list_providers())
            raise ValueError(
                f"Unsupported provider: {provider}. Available providers: {available}"
            )

        logger.info(f"Creating {provider_class.__name__} with model={model or 'default'}")
        if model is not None:
            return provider_class(model=model, **kwargs)
        return provider_class(**kwargs)

    @staticmethod
    def list_providers() -> List[str]:
        """Get list of available provider names."""
        return sorted(PROVIDER_REGISTRY.keys())
