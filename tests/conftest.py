"""Shared fixtures for ddl2data tests."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from ddl2data.agent import AgentWrapper, BaseLLMProvider, LLMResponse
from ddl2data.utils.config import Config, set_config

AUTHORS_BOOKS_DDL = """
CREATE TABLE authors(id INT PRIMARY KEY, name TEXT NOT NULL);
CREATE TABLE books(id INT PRIMARY KEY, author_id INT REFERENCES authors(id));
"""


class ScriptedProvider(BaseLLMProvider):
    """Provider replaying canned responses in order.

    The last response repeats once the script runs out. Every call is
    recorded as (prompt, temperature, max_tokens).
    """

    def __init__(self, responses: List[str], model: str = "scripted-1", **kwargs: Any):
        super().__init__(model, **kwargs)
        self.responses = list(responses)
        self.calls: List[tuple] = []

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append((prompt, temperature, max_tokens))
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        return LLMResponse(content=self.responses[index], model=self.model)


class SlowProvider(ScriptedProvider):
    """Provider whose calls never settle within a short timeout."""

    async def agenerate(self, prompt: str, **kwargs: Any) -> LLMResponse:
        self.calls.append((prompt, kwargs.get("temperature"), kwargs.get("max_tokens")))
        await asyncio.sleep(5)
        return LLMResponse(content="[]", model=self.model)


def scripted_agent(*responses: str) -> AgentWrapper:
    return AgentWrapper.from_provider(ScriptedProvider(list(responses)))


@pytest.fixture
def config():
    """Default config with fast chunk pacing, installed as the global config."""
    cfg = Config()
    cfg.set("generation.chunk_delay_seconds", 0)
    cfg.set("generation.table_timeout_seconds", 0.2)
    set_config(cfg)
    yield cfg
    set_config(None)


@pytest.fixture
def authors_books_ddl():
    return AUTHORS_BOOKS_DDL


@pytest.fixture
def authors_books_schema(config):
    from ddl2data.core.schema.parser import SchemaParser

    return asyncio.run(SchemaParser(config=config).parse(AUTHORS_BOOKS_DDL))
