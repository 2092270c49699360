"""LLM agent module for ddl2data."""

from ddl2data.agent.base import BaseLLMProvider, LLMResponse
from ddl2data.agent.factory import LLMProviderFactory
from ddl2data.agent.wrapper import AgentWrapper, create_agent

__all__ = [
    "AgentWrapper",
    "BaseLLMProvider",
    "LLMResponse",
    "LLMProviderFactory",
    "create_agent",
]
