# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tool call engine based on JSON Schema constrained (structured) outputs.

The model answers with a JSON object `{"content": ..., "toolCall": {"name", "args"}}`.
The object is re-parsed with json_repair as it streams in, so that only the
newly completed part of `content` is emitted to listeners.
"""

import json

from typing import Any, List, Optional, Sequence

from ...schemas import dumps_compact, parse_json_value
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

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "content": {
            "type": "string",
            "description": "Your response text to the user",
        },
        "toolCall": {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "The exact name of the tool to call",
                },
                "args": {
                    "type": "object",
                    "description": "The arguments for the tool call",
                },
            },
            "required": ["name", "args"],
        },
    },
    "anyOf": [{"required": ["content"]}, {"required": ["toolCall"]}],
}

STRUCTURED_OUTPUT_INSTRUCTIONS = """When you need to use a tool:
1. Respond with a structured JSON object with the following format:
{
  "content": "Always include a brief, concise message about what you're doing or what information you're providing. Avoid lengthy explanations.",
  "toolCall": {
    "name": "the_exact_tool_name",
    "args": {
      // The arguments as required by the tool's parameter schema
    }
  }
}
IMPORTANT: Always include both "content" and "toolCall" when using a tool. The "content" should be brief but informative.

If you want to provide a final answer without calling a tool:
{
  "content": "Your complete and helpful response to the user"
}"""


class StructuredOutputsToolCallEngine(ToolCallEngine):

    def prepare_prompt(self, instructions: str, tools: Sequence[ToolDefinition]) -> str:
        if not tools:
            return instructions

        tools_section = "\n\n".join(
            f"Tool name: {t.name}\nDescription: {t.description}\n"
            f"Parameters: {json.dumps(t.json_schema, indent=2)}"
            for t in tools
        )
        return f"""{instructions}

AVAILABLE TOOLS:
{tools_section}

{STRUCTURED_OUTPUT_INSTRUCTIONS}"""

    def prepare_request(
        self,
        model: str,
        messages: List[ChatMessage],
        tools: Optional[Sequence[ToolDefinition]] = None,
        temperature: float = 0.7,
    ) -> dict:
        request = {"model": model, "messages": messages, "temperature": temperature}
        if tools:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "agent_response_schema",
                    "strict": True,
                    "schema": RESPONSE_SCHEMA,
                },
            }
        return request

    def _tool_call_from(self, parsed: dict, state: StreamProcessingState) -> Optional[ChatToolCall]:
        tool_call = parsed.get("toolCall")
        if not isinstance(tool_call, dict) or not tool_call.get("name"):
            return None

        # Keep the id stable while the same call keeps streaming in
        existing = state.tool_calls[0] if state.tool_calls else None
        call_id = existing.id if existing else generate_tool_call_id()
        return ChatToolCall(
            id=call_id,
            function=FunctionCall(
                name=tool_call["name"], arguments=dumps_compact(tool_call.get("args") or {})
            ),
        )

    def process_chunk(self, chunk: Any, state: StreamProcessingState) -> StreamChunkResult:
        delta, reasoning = self._read_delta(chunk, state)

        new_content = get_field(delta, "content") or ""
        if not new_content:
            return StreamChunkResult(reasoning_content=reasoning, tool_calls=list(state.tool_calls))

        state.content_buffer += new_content
        if "{" not in state.content_buffer:
            # Not JSON at all, pass it through
            return StreamChunkResult(
                content=new_content, reasoning_content=reasoning, tool_calls=list(state.tool_calls)
            )

        content = ""
        has_tool_call_update = False
        parsed, _ = parse_json_value(state.content_buffer)
        if isinstance(parsed, dict):
            parsed_content = parsed.get("content")
            if isinstance(parsed_content, str) and parsed_content.startswith(
                state.last_parsed_content
            ):
                content = parsed_content[len(state.last_parsed_content):]
                state.last_parsed_content = parsed_content

            call = self._tool_call_from(parsed, state)
            if call is not None:
                state.tool_calls = [call]
                has_tool_call_update = True

        return StreamChunkResult(
            content=content,
            reasoning_content=reasoning,
            has_tool_call_update=has_tool_call_update,
            tool_calls=list(state.tool_calls),
        )

    def finalize(self, state: StreamProcessingState) -> ParsedModelResponse:
        parsed, warning = parse_json_value(state.content_buffer)
        if isinstance(parsed, dict):
            call = self._tool_call_from(parsed, state)
            if call is not None:
                state.tool_calls = [call]
            parsed_content = parsed.get("content")
            if isinstance(parsed_content, str):
                state.content_buffer = parsed_content
            elif call is not None:
                state.content_buffer = ""
        elif state.content_buffer:
            self._logger.warning(f"Failed to parse structured response: {warning}")

        finish_reason = (
            FinishReason.TOOL_CALLS.value
            if state.tool_calls
            else state.finish_reason or FinishReason.STOP.value
        )
        return ParsedModelResponse(
            content=state.content_buffer,
            reasoning_content=state.reasoning_buffer or None,
            tool_calls=list(state.tool_calls) or None,
            finish_reason=finish_reason,
        )

    def build_assistant_history_message(self, response: AgentSingleLoopResponse) -> ChatMessage:
        return {"role": "assistant", "content": response.content}

    def build_tool_result_history_messages(
        self, results: List[MultimodalToolCallResult]
    ) -> List[ChatMessage]:
        return build_tool_call_result_messages(results, native=False)
