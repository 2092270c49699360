"""Google Gemini provider implementation."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

try:
    import google.generativeai as genai
except ImportError:
    genai = None  # type: ignore

from ddl2data.agent.base import JSON_ONLY_INSTRUCTION, BaseLLMProvider, LLMResponse

# finish_reason values for SAFETY, RECITATION, OTHER
_FILTERED_FINISH_REASONS = (2, 3, 4)


class GeminiProvider(BaseLLMProvider):
    """Google Gemini API provider."""

    def __init__(
        self,
        model: str = "gemini-2.0-flash-001",
        api_key: Optional[str] = None,
        **kwargs: Any,
    ):
        """Initialize Gemini provider.

        Args:
            model: Model name (e.g., 'gemini-2.0-flash-001', 'gemini-1.5-pro')
            api_key: Google API key (or set GOOGLE_API_KEY / GEMINI_API_KEY)
            **kwargs: Generation defaults (temperature, max_output_tokens, ...)
        """
        if genai is None:
            raise ImportError(
                "google-generativeai package is required. "
                "Install with: pip install ddl2data[gemini]"
            )

        super().__init__(model, **kwargs)
        api_key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ValueError(
                "Google API key is required. "
                "Set agent.gemini.api_key in config.yml or the GOOGLE_API_KEY env var."
            )

        genai.configure(api_key=api_key)
        self.client = genai.GenerativeModel(model_name=self.model)

    def _build_generation_config(
        self, temperature: Optional[float], max_tokens: Optional[int], **kwargs: Any
    ) -> Optional[Any]:
        generation_config = self._defaults({"temperature", "max_output_tokens", "top_p", "top_k"})
        if temperature is not None:
            generation_config["temperature"] = temperature
        if max_tokens is not None:
            generation_config["max_output_tokens"] = max_tokens
        generation_config.update({k: v for k, v in kwargs.items() if v is not None})

        return genai.types.GenerationConfig(**generation_config) if generation_config else None

    @staticmethod
    def _usage(response: Any) -> Dict[str, int]:
        metadata = getattr(response, "usage_metadata", None)
        if metadata is None:
            return {}
        return {
            "prompt_tokens": getattr(metadata, "prompt_token_count", 0),
            "completion_tokens": getattr(metadata, "candidates_token_count", 0),
            "total_tokens": getattr(metadata, "total_token_count", 0),
        }

    def _content(self, response: Any) -> tuple[str, Optional[int]]:
        if not response.candidates:
            return "", None

        finish_reason = getattr(response.candidates[0], "finish_reason", None)
        try:
            return response.text, finish_reason
        except (ValueError, AttributeError) as e:
            if finish_reason in _FILTERED_FINISH_REASONS:
                self.logger.warning(f"Gemini response was filtered: {finish_reason}")
            else:
                self.logger.warning(f"Failed to extract text: {e}")
            # Empty content is treated as an unusable answer downstream
            return "", finish_reason

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate text using Gemini API."""
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        if response_format == "json":
            full_prompt = f"{full_prompt}\n\n{JSON_ONLY_INSTRUCTION}"

        response = self.client.generate_content(
            full_prompt,
            generation_config=self._build_generation_config(temperature, max_tokens, **kwargs),
        )
        content, finish_reason = self._content(response)

        return LLMResponse(
            content=content,
            model=self.model,
            usage=self._usage(response),
            metadata={"finish_reason": finish_reason},
        )
