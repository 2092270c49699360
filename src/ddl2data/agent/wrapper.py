"""High-level agent wrapper with config management."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from ddl2data.agent.base import BaseLLMProvider, LLMResponse
from ddl2data.agent.factory import LLMProviderFactory
from ddl2data.utils.config import Config, get_config
from ddl2data.utils.logging import get_logger

logger = get_logger(__name__)


def _expand_env(value: Any) -> Any:
    """Expand a ``${VAR}`` placeholder; unset variables leave the value as is."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1]) or value
    return value


class AgentWrapper:
    """High-level wrapper for LLM agents with config management.

    Handles configuration resolution from multiple sources:
    1. Explicit parameters
    2. Config (``agent`` section, with per-provider subsections and ``keys``)
    3. Environment variables
    4. Provider defaults

    Example:
        >>> agent = AgentWrapper(provider="gemini")
        >>> response = await agent.agenerate("Return a JSON array of 3 users")
        >>> print(response.content)
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        config: Optional[Config] = None,
        **kwargs: Any,
    ):
        """Initialize agent wrapper.

        Args:
            provider: Provider name ("gemini", "openai", "anthropic", "ollama")
            model: Model name (provider default if None)
            config: Configuration (global config if None)
            **kwargs: Provider-specific configuration

        Raises:
            ValueError: If no provider can be resolved or it is unsupported
            ImportError: If the provider's SDK is not installed
        """
        agent_config = (config or get_config()).section("agent")

        provider = provider or kwargs.pop("provider", None) or agent_config.get("provider")
        if provider is None:
            raise ValueError("Provider must be specified via parameter, config, or kwargs")

        # The top-level model belongs to the configured provider only
        default_model = agent_config.get("model") if provider == agent_config.get("provider") else None
        model = (
            model
            or kwargs.pop("model", None)
            or (agent_config.get(provider) or {}).get("model")
            or default_model
        )

        provider_kwargs = self._build_provider_kwargs(kwargs, agent_config, provider)
        self.provider = LLMProviderFactory.create_provider(
            provider=provider, model=model, **provider_kwargs
        )
        logger.info(f"Initialized AgentWrapper with {provider}/{self.provider.model}")

    @classmethod
    def from_provider(cls, provider: BaseLLMProvider) -> AgentWrapper:
        """Wrap an already constructed provider."""
        wrapper = cls.__new__(cls)
        wrapper.provider = provider
        return wrapper

    @staticmethod
    def _build_provider_kwargs(
        kwargs: Dict[str, Any], agent_config: Dict[str, Any], provider: str
    ) -> Dict[str, Any]:
        """Merge provider kwargs.

        Priority: explicit kwargs > provider section > keys section > agent defaults
        """
        merged: Dict[str, Any] = dict(agent_config.get("config") or {})
        if agent_config.get("temperature") is not None:
            merged["temperature"] = agent_config["temperature"]

        keys_config = agent_config.get("keys") or {}
        if provider == "gemini" and "google_api_key" in keys_config:
            merged["api_key"] = keys_config["google_api_key"]
        elif f"{provider}_api_key" in keys_config:
            merged["api_key"] = keys_config[f"{provider}_api_key"]

        for key, value in (agent_config.get(provider) or {}).items():
            if key != "model":
                merged[key] = value

        merged.update(kwargs)
        return {key: _expand_env(value) for key, value in merged.items()}

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text from a prompt (blocking)."""
        return self.provider.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
            **kwargs,
        )

    async def agenerate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text from a prompt without blocking the event loop."""
        return await self.provider.agenerate(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
            **kwargs,
        )

    @property
    def model(self) -> str:
        """Get current model name."""
        return self.provider.model

    @property
    def provider_type(self) -> str:
        """Get current provider type."""
        return self.provider.__class__.__name__.replace("Provider", "").lower()

    def __repr__(self) -> str:
        return f"AgentWrapper({self.provider_type}/{self.model})"


def create_agent(config: Optional[Config] = None, force: bool = False) -> Optional[AgentWrapper]:
    """Build the configured agent, or None when it is disabled or unavailable.

    Args:
        config: Configuration (global config if None)
        force: Build even when ``agent.enabled`` is false

    Returns:
        AgentWrapper, or None
    """
    config = config or get_config()
    if not force and not config.get("agent.enabled", False):
        return None
    try:
        return AgentWrapper(config=config)
    except (ImportError, ValueError) as e:
        logger.warning(f"Agent unavailable, continuing without AI: {e}")
        return None
