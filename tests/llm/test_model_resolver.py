# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for run-time model resolution."""
import pytest

from agent_runtime.errors import ConfigurationError
from agent_runtime.llm.client import get_llm_client
from agent_runtime.llm.model_resolver import ModelResolver
from agent_runtime.types.agent_types import ModelOptions, ModelProvider, ModelSelection


def resolver_with(*providers, use=None):
    return ModelResolver(ModelOptions(providers=list(providers), use=use))


def test_defaults_without_configuration():
    resolved = ModelResolver().resolve()
    assert (resolved.provider, resolved.model) == ("openai", "gpt-4o")
    assert resolved.actual_provider == "openai"


def test_first_configured_model_is_default():
    resolver = resolver_with(
        ModelProvider(name="acme", models=["acme-large", "acme-small"], base_url="https://acme.test/v1"),
        ModelProvider(name="other", models=["other-1"]),
    )
    resolved = resolver.resolve()
    assert (resolved.provider, resolved.model) == ("acme", "acme-large")
    assert resolved.base_url == "https://acme.test/v1"


def test_explicit_selection_is_default():
    resolver = resolver_with(
        ModelProvider(name="acme", models=["acme-large"]),
        use=ModelSelection(provider="deepseek", model="deepseek-chat"),
    )
    resolved = resolver.resolve()
    assert (resolved.provider, resolved.model) == ("deepseek", "deepseek-chat")
    assert resolved.base_url == "https://api.deepseek.com/v1"


def test_run_options_win():
    resolver = resolver_with(ModelProvider(name="acme", models=["acme-large"]))
    resolved = resolver.resolve(run_model="llama3", run_provider="ollama")

    assert (resolved.provider, resolved.model) == ("ollama", "llama3")
    assert resolved.base_url == "http://127.0.0.1:11434/v1"
    assert resolved.api_key == "ollama"
    assert resolved.actual_provider == "openai"


def test_provider_inferred_from_model():
    resolver = resolver_with(
        ModelProvider(name="acme", models=["acme-large"], api_key="secret"),
    )
    resolved = resolver.resolve(run_model="acme-large")
    assert resolved.provider == "acme"
    assert resolved.api_key == "secret"


def test_unknown_model_defaults_to_openai():
    resolved = ModelResolver().resolve(run_model="mystery-model")
    assert (resolved.provider, resolved.model) == ("openai", "mystery-model")


def test_provider_without_model_is_an_error():
    resolver = resolver_with(use=ModelSelection(provider="acme"))
    with pytest.raises(ConfigurationError):
        resolver.resolve()


def test_configured_provider_overrides_builtin_defaults():
    resolver = resolver_with(
        ModelProvider(name="ollama", models=["qwen"], base_url="http://gpu-box:11434/v1"),
    )
    resolved = resolver.resolve(run_model="qwen", run_provider="ollama")
    assert resolved.base_url == "http://gpu-box:11434/v1"
    assert resolved.api_key == "ollama"


def test_get_all_providers_fills_defaults():
    resolver = resolver_with(ModelProvider(name="lm-studio", models=["local"]))
    (provider,) = resolver.get_all_providers()
    assert provider.name == "openai"
    assert provider.base_url == "http://127.0.0.1:1234/v1"


def test_client_uses_resolved_endpoint():
    resolved = ModelResolver().resolve(run_model="llama3", run_provider="ollama")
    client = get_llm_client(resolved)
    assert str(client.base_url).startswith("http://127.0.0.1:11434/v1")
    assert client.api_key == "ollama"
