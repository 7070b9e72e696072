# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base interface for tool call engines.

A tool call engine is the protocol adapter between the agent's tool model and
one family of chat completion providers. It decides how tools are declared in
a request, how a streamed response is reassembled into content, reasoning and
tool calls, and how an executed turn is replayed into the conversation.
"""

import os
import time
import logging

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ...types.llm_types import (
    AgentSingleLoopResponse,
    ChatMessage,
    ParsedModelResponse,
    StreamChunkResult,
    StreamProcessingState,
)
from ...types.tool_types import MultimodalToolCallResult, ToolDefinition

logger = logging.getLogger(__name__)


def get_field(obj: Any, key: str) -> Any:
    """Read a field from either a provider object or its dict form."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def generate_tool_call_id() -> str:
    return f"call_{int(time.time() * 1000)}_{os.urandom(5).hex()[:9]}"


class ToolCallEngine(ABC):
    """Abstract base class for tool call engines."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(type(self).__module__)

    @abstractmethod
    def prepare_prompt(self, instructions: str, tools: Sequence[ToolDefinition]) -> str:
        """Build the system prompt for the given instructions and tools.

        Args:
            instructions: The agent's base instructions
            tools: The tools available this turn

        Returns:
            The system prompt text
        """
        pass

    @abstractmethod
    def prepare_request(
        self,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        temperature: float = 0.7,
    ) -> dict:
        """Build the chat completion request parameters.

        Must not include an empty tool list: some providers reject it.
        """
        pass

    def init_stream_state(self) -> StreamProcessingState:
        return StreamProcessingState()

    @abstractmethod
    def process_chunk(self, chunk: Any, state: StreamProcessingState) -> StreamChunkResult:
        """Fold one streamed chunk into the state and report what it added."""
        pass

    @abstractmethod
    def finalize(self, state: StreamProcessingState) -> ParsedModelResponse:
        """Produce the complete response once the stream has ended."""
        pass

    @abstractmethod
    def build_assistant_history_message(self, response: AgentSingleLoopResponse) -> ChatMessage:
        pass

    @abstractmethod
    def build_tool_result_history_messages(
        self, results: List[MultimodalToolCallResult]
    ) -> List[ChatMessage]:
        pass

    def _read_delta(self, chunk: Any, state: StreamProcessingState) -> tuple[Any, str]:
        """Handle the parts of a chunk every engine treats the same way.

        Records the finish reason and accumulates reasoning content, which
        OpenAI-compatible reasoning models send as `reasoning_content`.

        Returns:
            The chunk's delta object, and the reasoning text it carried
        """
        choices = get_field(chunk, "choices") or []
        choice = choices[0] if choices else None

        finish_reason = get_field(choice, "finish_reason")
        if finish_reason:
            state.finish_reason = finish_reason

        delta = get_field(choice, "delta")
        reasoning = get_field(delta, "reasoning_content") or ""
        if reasoning:
            state.reasoning_buffer += reasoning
        return delta, reasoning
