# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tool call engine for providers with native (OpenAI style) function calling."""

from typing import Any, List, Optional, Sequence

from ...types.llm_types import (
    AgentSingleLoopResponse,
    ChatMessage,
    ChatToolCall,
    FinishReason,
    FunctionCall,
    ParsedModelResponse,
    StreamChunkResult,
    StreamProcessingState,
)
from ...types.tool_types import MultimodalToolCallResult, ToolDefinition
from .base import ToolCallEngine, generate_tool_call_id, get_field
from .utils import build_tool_call_result_messages


def tool_to_native(tool: ToolDefinition) -> dict:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.json_schema,
        },
    }


class NativeToolCallEngine(ToolCallEngine):
    """Uses the provider's `tools` request field and `tool_calls` response deltas."""

    def prepare_prompt(self, instructions: str, tools: Sequence[ToolDefinition]) -> str:
        # Tools travel in the request, not in the prompt
        return instructions

    def prepare_request(
        self,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        temperature: float = 0.7,
    ) -> dict:
        request = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if tools:
            self._logger.debug(f"Declaring {len(tools)} native tools")
            request["tools"] = [tool_to_native(t) for t in tools]
        return request

    def process_chunk(self, chunk: Any, state: StreamProcessingState) -> StreamChunkResult:
        delta, reasoning = self._read_delta(chunk, state)

        content = get_field(delta, "content") or ""
        if content:
            state.content_buffer += content

        fragments = get_field(delta, "tool_calls") or []
        for fragment in fragments:
            self._merge_fragment(fragment, state)

        return StreamChunkResult(
            content=content,
            reasoning_content=reasoning,
            has_tool_call_update=bool(fragments),
            tool_calls=list(state.tool_calls),
        )

    def _merge_fragment(self, fragment: Any, state: StreamProcessingState) -> None:
        """Merge one indexed tool call fragment into the accumulated calls.

        The id, type and name are taken from the first fragment that carries
        them; argument text is appended in arrival order.
        """
        index = get_field(fragment, "index")
        if index is None:
            index = len(state.tool_call_positions)
        function = get_field(fragment, "function")
        fragment_id = get_field(fragment, "id")
        fragment_type = get_field(fragment, "type")
        name = get_field(function, "name")
        arguments = get_field(function, "arguments") or ""

        position = state.tool_call_positions.get(index)
        if position is None:
            state.tool_call_positions[index] = len(state.tool_calls)
            state.tool_calls.append(
                ChatToolCall(
                    id=fragment_id or "",
                    type=fragment_type or "function",
                    function=FunctionCall(name=name or "", arguments=arguments),
                )
            )
            return

        call = state.tool_calls[position]
        if fragment_id and not call.id:
            call.id = fragment_id
        if name and not call.function.name:
            call.function.name = name
        call.function.arguments += arguments

    def finalize(self, state: StreamProcessingState) -> ParsedModelResponse:
        for call in state.tool_calls:
            if not call.id:
                call.id = generate_tool_call_id()
                self._logger.warning(
                    f"Tool call {call.function.name} arrived without an id, assigned {call.id}"
                )

        return ParsedModelResponse(
            content=state.content_buffer,
            reasoning_content=state.reasoning_buffer or None,
            tool_calls=list(state.tool_calls) or None,
            finish_reason=state.finish_reason or FinishReason.STOP.value,
        )

    def build_assistant_history_message(self, response: AgentSingleLoopResponse) -> ChatMessage:
        message: ChatMessage = {"role": "assistant", "content": response.content}
        if response.tool_calls:
            message["tool_calls"] = [tc.to_message_param() for tc in response.tool_calls]
        return message

    def build_tool_result_history_messages(
        self, results: List[MultimodalToolCallResult]
    ) -> List[ChatMessage]:
        return build_tool_call_result_messages(results, native=True)
