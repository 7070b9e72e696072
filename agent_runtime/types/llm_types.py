# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Provider-facing types shared by the tool call engines and the agent loop.

Provider messages and requests are kept as plain dicts in the OpenAI chat
completions shape, since they are handed straight to the client.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

ChatMessage = Dict[str, Any]
ContentPart = Dict[str, Any]


class FinishReason(str, Enum):
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"
    MAX_ITERATIONS = "max_iterations"
    ABORT = "abort"
    ERROR = "error"


class FunctionCall(BaseModel):
    name: str = ""
    arguments: str = ""


class ChatToolCall(BaseModel):
    """A tool call as requested by the model."""

    id: str = ""
    type: str = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)

    def to_message_param(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "function": {
                "name": self.function.name,
                "arguments": self.function.arguments,
            },
        }


class StreamProcessingState(BaseModel):
    """Per-turn accumulator, owned by the in-flight turn only."""

    content_buffer: str = ""
    reasoning_buffer: str = ""
    tool_calls: List[ChatToolCall] = Field(default_factory=list)
    finish_reason: Optional[str] = None

    # Native engine: provider tool call index -> position in tool_calls
    tool_call_positions: Dict[int, int] = Field(default_factory=dict)
    # Structured outputs engine: the `content` value already streamed out
    last_parsed_content: str = ""


class StreamChunkResult(BaseModel):
    content: str = ""
    reasoning_content: str = ""
    has_tool_call_update: bool = False
    tool_calls: List[ChatToolCall] = Field(default_factory=list)


class ParsedModelResponse(BaseModel):
    content: str = ""
    reasoning_content: Optional[str] = None
    tool_calls: Optional[List[ChatToolCall]] = None
    finish_reason: str = FinishReason.STOP.value


class AgentSingleLoopResponse(BaseModel):
    """The part of an assistant turn replayed into the conversation history."""

    content: str = ""
    tool_calls: Optional[List[ChatToolCall]] = None
