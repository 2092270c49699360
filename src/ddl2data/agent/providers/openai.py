"""OpenAI LLM provider."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

try:
    from openai import OpenAI
except ImportError:
    OpenAI = None  # type: ignore

from ddl2data.agent.base import BaseLLMProvider, LLMResponse

_CLIENT_KEYS = {"api_key", "base_url", "organization", "project", "timeout", "max_retries"}
_DEFAULT_KEYS = {"temperature", "top_p", "frequency_penalty", "presence_penalty", "stop", "seed"}


class OpenAIProvider(BaseLLMProvider):
    """OpenAI chat completions provider."""

    def __init__(self, model: Optional[str] = None, **kwargs: Any):
        """Initialize OpenAI provider.

        Args:
            model: Model name (defaults to gpt-4o-mini)
            **kwargs: Configuration options including:
                - api_key: OpenAI API key (or OPENAI_API_KEY env var)
                - base_url: Optional custom API base URL (OpenAI-compatible servers)
                - temperature: Default temperature
                - max_tokens: Default max tokens
        """
        if OpenAI is None:
            raise ImportError(
                "openai package is required. Install with: pip install ddl2data[openai]"
            )

        client_kwargs = {k: v for k, v in kwargs.items() if k in _CLIENT_KEYS}
        if "api_key" not in client_kwargs and os.getenv("OPENAI_API_KEY"):
            client_kwargs["api_key"] = os.getenv("OPENAI_API_KEY")
        self.client = OpenAI(**client_kwargs)

        super().__init__(
            model=model or "gpt-4o-mini",
            **{k: v for k, v in kwargs.items() if k not in _CLIENT_KEYS},
        )

    @property
    def _uses_completion_tokens(self) -> bool:
        """Reasoning-series models take max_completion_tokens instead of max_tokens."""
        return self.model.startswith(("o1", "o3", "o4", "gpt-5"))

    def _request_kwargs(
        self, temperature: Optional[float], max_tokens: Optional[int], response_format: Optional[str]
    ) -> Dict[str, Any]:
        request = self._defaults(_DEFAULT_KEYS)
        if temperature is not None:
            request["temperature"] = temperature

        limit = max_tokens or self.config.get("max_tokens") or self.config.get("max_completion_tokens")
        if limit is not None:
            key = "max_completion_tokens" if self._uses_completion_tokens else "max_tokens"
            request[key] = limit

        if response_format == "json":
            request["response_format"] = {"type": "json_object"}
        return request

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
            max_tokens: Maximum tokens to generate
            response_format: Response format ("json" or None)
            **kwargs: Additional request parameters

        Returns:
            LLMResponse object
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        request = self._request_kwargs(temperature, max_tokens, response_format)
        request.update(kwargs)

        try:
            response = self.client.chat.completions.create(
                model=self.model, messages=messages, **request
            )
        except Exception as e:
            self.logger.error(f"OpenAI API error: {e}")
            raise

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            usage=usage,
            metadata={"finish_reason": response.choices[0].finish_reason},
        )
