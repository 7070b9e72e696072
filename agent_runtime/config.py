# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Agent Runtime Configuration

Centralized defaults for the agent runtime, overridable from the environment
(or a .env file) through AGENT_RUNTIME_* variables.
"""

import os

from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

from .types.agent_types import ModelOptions, ModelProvider, ModelSelection

ENV_PREFIX = "AGENT_RUNTIME_"


@dataclass
class RuntimeConfig:
    """Configuration for agent runs"""

    # Loop
    DEFAULT_MAX_ITERATIONS: int = 10
    DEFAULT_TEMPERATURE: float = 0.7
    DEFAULT_MAX_TOKENS: Optional[int] = None
    DEFAULT_TOOL_CALL_ENGINE: str = "native"
    DEFAULT_INSTRUCTIONS: str = (
        "You are an intelligent assistant that can use provided tools to answer "
        "the user's questions. Think step by step, call tools when they help, "
        "and give a clear final answer."
    )

    # Event log
    DEFAULT_MAX_EVENTS: int = 1000
    DEFAULT_AUTO_TRIM: bool = True

    # Context
    DEFAULT_MAX_IMAGES: Optional[int] = None

    # Model selection
    PROVIDER: Optional[str] = None
    MODEL: Optional[str] = None
    BASE_URL: Optional[str] = None
    API_KEY: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "RuntimeConfig":
        """Build a config from AGENT_RUNTIME_* environment variables.

        Args:
            dotenv: Load a .env file into the environment first
        """
        if dotenv:
            load_dotenv()

        def get(name: str) -> Optional[str]:
            value = os.getenv(f"{ENV_PREFIX}{name}")
            return value if value else None

        defaults = cls()
        max_tokens = get("MAX_TOKENS")
        max_images = get("MAX_IMAGES")
        auto_trim = get("AUTO_TRIM")
        return cls(
            DEFAULT_MAX_ITERATIONS=int(get("MAX_ITERATIONS") or defaults.DEFAULT_MAX_ITERATIONS),
            DEFAULT_TEMPERATURE=float(get("TEMPERATURE") or defaults.DEFAULT_TEMPERATURE),
            DEFAULT_MAX_TOKENS=int(max_tokens) if max_tokens else None,
            DEFAULT_TOOL_CALL_ENGINE=get("TOOL_CALL_ENGINE") or defaults.DEFAULT_TOOL_CALL_ENGINE,
            DEFAULT_INSTRUCTIONS=get("INSTRUCTIONS") or defaults.DEFAULT_INSTRUCTIONS,
            DEFAULT_MAX_EVENTS=int(get("MAX_EVENTS") or defaults.DEFAULT_MAX_EVENTS),
            DEFAULT_AUTO_TRIM=(
                auto_trim.lower() in ("1", "true", "yes") if auto_trim else defaults.DEFAULT_AUTO_TRIM
            ),
            DEFAULT_MAX_IMAGES=int(max_images) if max_images else None,
            PROVIDER=get("PROVIDER"),
            MODEL=get("MODEL"),
            BASE_URL=get("BASE_URL"),
            API_KEY=get("API_KEY") or os.getenv("OPENAI_API_KEY") or None,
        )

    def to_model_options(self) -> ModelOptions:
        """The configured model selection, as agent model options."""
        if not (self.PROVIDER or self.MODEL):
            return ModelOptions()

        selection = ModelSelection(
            provider=self.PROVIDER,
            model=self.MODEL,
            base_url=self.BASE_URL,
            api_key=self.API_KEY,
        )
        providers = []
        if self.PROVIDER and self.MODEL:
            providers.append(
                ModelProvider(
                    name=self.PROVIDER,
                    models=[self.MODEL],
                    base_url=self.BASE_URL,
                    api_key=self.API_KEY,
                )
            )
        return ModelOptions(providers=providers, use=selection)


# Global config instance
config = RuntimeConfig()
