# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Construction of the chat completions client for a resolved model."""

import os
import logging

from openai import AsyncOpenAI

from ..types.agent_types import ResolvedModel

logger = logging.getLogger(__name__)


def get_llm_client(resolved: ResolvedModel) -> AsyncOpenAI:
    """Create an OpenAI-compatible async client for the resolved model.

    All built-in providers speak the OpenAI chat completions protocol, so they
    only differ in base URL and API key.
    """
    if resolved.actual_provider != "openai":
        logger.warning(
            f"Provider {resolved.provider} is not known to be OpenAI compatible, "
            "using the OpenAI client anyway"
        )

    api_key = resolved.api_key or os.getenv("OPENAI_API_KEY")
    logger.info(
        f"Creating LLM client for {resolved.provider} at {resolved.base_url or 'default endpoint'}"
    )
    return AsyncOpenAI(api_key=api_key, base_url=resolved.base_url)
