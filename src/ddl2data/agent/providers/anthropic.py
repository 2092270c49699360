"""Anthropic/Claude LLM provider."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

try:
    from anthropic import Anthropic
except ImportError:
    Anthropic = None  # type: ignore

from ddl2data.agent.base import BaseLLMProvider, LLMResponse

_CLIENT_KEYS = {"api_key", "base_url", "timeout", "max_retries"}
_DEFAULT_KEYS = {"temperature", "max_tokens", "top_p", "top_k", "stop_sequences"}
_DEFAULT_MAX_TOKENS = 8192


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Messages API provider."""

    def __init__(self, model: Optional[str] = None, **kwargs: Any):
        """Initialize Anthropic provider.

        Args:
            model: Model name (defaults to claude-sonnet-4-5-20250929)
            **kwargs: Configuration options including:
                - api_key: Anthropic API key (or ANTHROPIC_API_KEY env var)
                - base_url: Optional custom API base URL
                - temperature: Default temperature
                - max_tokens: Default max tokens
        """
        if Anthropic is None:
            raise ImportError(
                "anthropic package is required. Install with: pip install ddl2data[anthropic]"
            )

        client_kwargs = {k: v for k, v in kwargs.items() if k in _CLIENT_KEYS}
        if "api_key" not in client_kwargs and os.getenv("ANTHROPIC_API_KEY"):
            client_kwargs["api_key"] = os.getenv("ANTHROPIC_API_KEY")
        self.client = Anthropic(**client_kwargs)

        super().__init__(
            model=model or "claude-sonnet-4-5-20250929",
            **{k: v for k, v in kwargs.items() if k not in _CLIENT_KEYS},
        )

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
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (8192 if unset anywhere)
            response_format: Response format ("json" or None)
            **kwargs: Additional request parameters

        Returns:
            LLMResponse object
        """
        request: Dict[str, Any] = self._defaults(_DEFAULT_KEYS)
        if temperature is not None:
            request["temperature"] = temperature
        if max_tokens is not None:
            request["max_tokens"] = max_tokens
        request.setdefault("max_tokens", _DEFAULT_MAX_TOKENS)
        request.update(kwargs)

        if response_format == "json":
            json_rule = "You must respond with valid JSON only, no additional text."
            system_prompt = f"{system_prompt}\n\n{json_rule}" if system_prompt else json_rule
        if system_prompt:
            request["system"] = [{"type": "text", "text": system_prompt}]

        try:
            response = self.client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                **request,
            )
        except Exception as e:
            self.logger.error(f"Anthropic API error: {e}")
            raise

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return LLMResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            },
            metadata={"stop_reason": response.stop_reason},
        )
