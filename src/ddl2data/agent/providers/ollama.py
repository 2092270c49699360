"""Ollama provider implementation for local models."""

from __future__ import annotations

from typing import Any, Optional

try:
    import requests
except ImportError:
    requests = None  # type: ignore

from ddl2data.agent.base import JSON_ONLY_INSTRUCTION, BaseLLMProvider, LLMResponse

_OPTION_KEYS = {"temperature", "top_p", "top_k", "num_predict", "num_ctx", "repeat_penalty", "stop", "seed"}


class OllamaProvider(BaseLLMProvider):
    """Ollama provider for local LLM models.

    Requires Ollama to be running. Default endpoint: http://localhost:11434
    """

    def __init__(
        self,
        model: str = "llama3.1",
        base_url: str = "http://localhost:11434",
        timeout: float = 300.0,
        **kwargs: Any,
    ):
        """Initialize Ollama provider.

        Args:
            model: Model name (e.g., 'llama3.1', 'mistral', 'qwen2.5')
            base_url: Ollama server URL (``host`` is accepted as an alias)
            timeout: HTTP timeout in seconds
            **kwargs: Generation defaults passed as Ollama options
        """
        if requests is None:
            raise ImportError(
                "requests package is required. Install with: pip install requests"
            )

        base_url = kwargs.pop("host", None) or base_url
        super().__init__(model, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text using the Ollama /api/generate endpoint."""
        options = self._defaults(_OPTION_KEYS)
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        options.update(kwargs)

        payload = {
            "model": self.model,
            "prompt": f"{prompt}\n\n{JSON_ONLY_INSTRUCTION}" if response_format == "json" else prompt,
            "stream": False,
            "options": options,
        }
        if response_format == "json":
            payload["format"] = "json"
        if system_prompt:
            payload["system"] = system_prompt

        response = requests.post(
            f"{self.base_url}/api/generate", json=payload, timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()

        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return LLMResponse(
            content=data.get("response", ""),
            model=self.model,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            metadata={"done": data.get("done", False)},
        )
