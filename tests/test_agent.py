"""Tests for the LLM agent layer."""

import asyncio

import pytest

from conftest import ScriptedProvider
from ddl2data.agent import AgentWrapper, LLMProviderFactory, create_agent
from ddl2data.agent.providers import OllamaProvider
from ddl2data.utils.config import Config


def test_list_providers():
    assert LLMProviderFactory.list_providers() == ["anthropic", "gemini", "ollama", "openai"]


def test_unsupported_provider():
    with pytest.raises(ValueError, match="Unsupported provider: nope"):
        LLMProviderFactory.create_provider("nope")


def test_provider_kwargs_priority_and_env(monkeypatch):
    monkeypatch.setenv("DDL2DATA_TEST_KEY", "secret")
    agent_config = {
        "temperature": 0.3,
        "keys": {"openai_api_key": "${DDL2DATA_TEST_KEY}"},
        "openai": {"model": "gpt-4o-mini", "timeout": 10},
    }

    merged = AgentWrapper._build_provider_kwargs({"timeout": 20}, agent_config, "openai")

    assert merged == {"temperature": 0.3, "api_key": "secret", "timeout": 20}


def test_unset_env_placeholder_kept():
    merged = AgentWrapper._build_provider_kwargs(
        {}, {"keys": {"google_api_key": "${DDL2DATA_UNSET_VAR}"}}, "gemini"
    )

    assert merged == {"api_key": "${DDL2DATA_UNSET_VAR}"}


def test_wrapper_from_config():
    config = Config()
    config.set("agent.provider", "ollama")
    config.set("agent.ollama", {"model": "qwen2.5", "base_url": "http://gpu:11434"})

    agent = AgentWrapper(config=config)

    assert agent.provider_type == "ollama"
    assert agent.model == "qwen2.5"
    assert agent.provider.base_url == "http://gpu:11434"


def test_default_model_only_for_configured_provider():
    config = Config()

    agent = AgentWrapper(provider="ollama", config=config)

    assert agent.model == "llama3.1"


def test_create_agent_disabled_returns_none():
    assert create_agent(Config()) is None


def test_create_agent_unavailable_returns_none():
    config = Config()
    config.set("agent.provider", "nope")

    assert create_agent(config, force=True) is None


def test_from_provider_generates():
    provider = ScriptedProvider(['[{"id": 1}]'])
    agent = AgentWrapper.from_provider(provider)

    response = asyncio.run(agent.agenerate("rows please", temperature=0.1, max_tokens=50))

    assert response.content == '[{"id": 1}]'
    assert agent.provider_type == "scripted"
    assert agent.model == "scripted-1"
    assert provider.calls == [("rows please", 0.1, 50)]


def test_ollama_request_payload(monkeypatch):
    captured = {}

    class FakeResponse:
        def raise_for_status(self):
            pass

        def json(self):
            return {"response": "[]", "prompt_eval_count": 3, "eval_count": 2, "done": True}

    def fake_post(url, json, timeout):
        captured.update(url=url, payload=json, timeout=timeout)
        return FakeResponse()

    monkeypatch.setattr("ddl2data.agent.providers.ollama.requests.post", fake_post)
    provider = OllamaProvider(model="llama3.1", temperature=0.5)

    response = provider.generate("hi", temperature=0.2, max_tokens=64, response_format="json")

    assert captured["url"] == "http://localhost:11434/api/generate"
    assert captured["payload"]["options"] == {"temperature": 0.2, "num_predict": 64}
    assert captured["payload"]["format"] == "json"
    assert response.usage["total_tokens"] == 5
