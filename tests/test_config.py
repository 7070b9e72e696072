# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for environment driven runtime configuration."""
import pytest

from agent_runtime.config import ENV_PREFIX, RuntimeConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in [
        "MAX_ITERATIONS", "TEMPERATURE", "MAX_TOKENS", "TOOL_CALL_ENGINE",
        "INSTRUCTIONS", "MAX_EVENTS", "AUTO_TRIM", "MAX_IMAGES",
        "PROVIDER", "MODEL", "BASE_URL", "API_KEY",
    ]:
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = RuntimeConfig.from_env(dotenv=False)
    assert settings == RuntimeConfig()
    assert settings.DEFAULT_MAX_ITERATIONS == 10
    assert settings.DEFAULT_TOOL_CALL_ENGINE == "native"


def test_overrides(clean_env):
    clean_env.setenv("AGENT_RUNTIME_MAX_ITERATIONS", "3")
    clean_env.setenv("AGENT_RUNTIME_TEMPERATURE", "0.1")
    clean_env.setenv("AGENT_RUNTIME_MAX_TOKENS", "512")
    clean_env.setenv("AGENT_RUNTIME_AUTO_TRIM", "false")
    clean_env.setenv("AGENT_RUNTIME_MAX_IMAGES", "2")
    clean_env.setenv("AGENT_RUNTIME_TOOL_CALL_ENGINE", "prompt_engineering")

    settings = RuntimeConfig.from_env(dotenv=False)

    assert settings.DEFAULT_MAX_ITERATIONS == 3
    assert settings.DEFAULT_TEMPERATURE == 0.1
    assert settings.DEFAULT_MAX_TOKENS == 512
    assert settings.DEFAULT_AUTO_TRIM is False
    assert settings.DEFAULT_MAX_IMAGES == 2
    assert settings.DEFAULT_TOOL_CALL_ENGINE == "prompt_engineering"


def test_api_key_falls_back_to_openai_variable(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    assert RuntimeConfig.from_env(dotenv=False).API_KEY == "sk-test"


def test_model_options_without_selection():
    options = RuntimeConfig().to_model_options()
    assert options.use is None
    assert options.providers == []


def test_model_options_with_provider_and_model():
    settings = RuntimeConfig(PROVIDER="local", MODEL="llama3", BASE_URL="http://localhost:11434/v1")
    options = settings.to_model_options()

    assert options.use.provider == "local"
    assert options.use.model == "llama3"
    assert options.providers[0].name == "local"
    assert options.providers[0].models == ["llama3"]
    assert options.providers[0].base_url == "http://localhost:11434/v1"


def test_model_only_selection_declares_no_provider():
    options = RuntimeConfig(MODEL="gpt-4o-mini").to_model_options()
    assert options.use.model == "gpt-4o-mini"
    assert options.providers == []
