"""LLM provider registry."""

from ddl2data.agent.providers.anthropic import AnthropicProvider
from ddl2data.agent.providers.gemini import GeminiProvider
from ddl2data.agent.providers.ollama import OllamaProvider
from ddl2data.agent.providers.openai import OpenAIProvider

# Provider registry maps provider name to class
PROVIDER_REGISTRY = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "ollama": OllamaProvider,
    "gemini": GeminiProvider,
}

__all__ = [
    "PROVIDER_REGISTRY",
    "AnthropicProvider",
    "GeminiProvider",
    "OllamaProvider",
    "OpenAIProvider",
]
